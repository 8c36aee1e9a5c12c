"""
Shipment workflow — explicit transition tables for both axes.

Pure: no ORM, no side effects. The service layer
(bondman.services.shipments) locks the row, asks resolve() for the next
state and only then performs side effects.

    resolve(Stage.PLANNING, EntrySummaryStatus.NOT_PREPARED, Action.ADVANCE)
    # WorkflowState(stage='Picking', status='NOT_PREPARED')
"""

from dataclasses import dataclass

from django.db import models
from django.utils.translation import gettext_lazy as _

from bondman.exceptions import InvalidTransition
from bondman.models.enums import EntrySummaryStatus, EventAxis, Stage


class Action(models.TextChoices):
    # Stage axis
    ADVANCE = 'advance', _('Advance stage')
    REVERT = 'revert', _('Revert stage')
    HOLD = 'hold', _('Put on hold')
    RESUME = 'resume', _('Resume from hold')
    CANCEL = 'cancel', _('Cancel')
    DRIVER_SIGNOFF = 'driver_signoff', _('Driver signoff')
    GENERATE_LABEL = 'generate_label', _('Generate label')
    # Entry summary axis
    PREPARE = 'prepare', _('Prepare draft')
    MARK_READY = 'mark_ready', _('Mark ready to file')
    FILE = 'file', _('File with CBP')
    ACCEPT = 'accept', _('Accepted by CBP')
    REJECT = 'reject', _('Rejected by CBP')
    CORRECT = 'correct', _('Correct rejected entry')


# Forward order of the physical flow. Shipped is reached only by signoff.
FLOW = (
    Stage.PLANNING,
    Stage.PICKING,
    Stage.PACKING,
    Stage.LOADING,
    Stage.READY_TO_SHIP,
    Stage.STAGED,
)

# Returns to Stage.stage_before_hold; resolved at runtime
_HELD_STAGE = object()


def _key(state, action) -> tuple[str, str]:
    return (str(state), str(action))


def _build_stage_table() -> dict:
    table = {}
    for current, following in zip(FLOW, FLOW[1:]):
        table[_key(current, Action.ADVANCE)] = following
        table[_key(following, Action.REVERT)] = current
    for stage in FLOW:
        table[_key(stage, Action.HOLD)] = Stage.ON_HOLD
        table[_key(stage, Action.CANCEL)] = Stage.CANCELLED
    table[_key(Stage.ON_HOLD, Action.RESUME)] = _HELD_STAGE
    table[_key(Stage.ON_HOLD, Action.CANCEL)] = Stage.CANCELLED
    for stage in (Stage.READY_TO_SHIP, Stage.STAGED):
        table[_key(stage, Action.DRIVER_SIGNOFF)] = Stage.SHIPPED
    for stage in (Stage.LOADING, Stage.READY_TO_SHIP, Stage.STAGED):
        table[_key(stage, Action.GENERATE_LABEL)] = stage
    return table


STAGE_TRANSITIONS = _build_stage_table()

STATUS_TRANSITIONS = {
    _key(EntrySummaryStatus.NOT_PREPARED, Action.PREPARE): EntrySummaryStatus.DRAFT,
    _key(EntrySummaryStatus.DRAFT, Action.MARK_READY): EntrySummaryStatus.READY_TO_FILE,
    _key(EntrySummaryStatus.READY_TO_FILE, Action.FILE): EntrySummaryStatus.FILED,
    _key(EntrySummaryStatus.FILED, Action.ACCEPT): EntrySummaryStatus.ACCEPTED,
    _key(EntrySummaryStatus.FILED, Action.REJECT): EntrySummaryStatus.REJECTED,
    _key(EntrySummaryStatus.REJECTED, Action.CORRECT): EntrySummaryStatus.DRAFT,
}

STAGE_ACTIONS = frozenset(action for _stage, action in STAGE_TRANSITIONS)
STATUS_ACTIONS = frozenset(action for _status, action in STATUS_TRANSITIONS)

# Actions that leave both axes untouched
SIDE_EFFECT_ACTIONS = frozenset({str(Action.GENERATE_LABEL)})


@dataclass(frozen=True)
class WorkflowState:
    stage: str
    status: str


def axis_of(action: str) -> str:
    action = str(action)
    if action in SIDE_EFFECT_ACTIONS:
        return EventAxis.ACTION
    if action in STAGE_ACTIONS:
        return EventAxis.STAGE
    return EventAxis.STATUS


def resolve(stage: str, status: str, action: str, stage_before_hold: str = '') -> WorkflowState:
    """
    Next state for (stage, status) under action.

    Raises:
        InvalidTransition: Unknown action, or action illegal in this state
    """
    try:
        action = Action(action)
    except ValueError:
        raise InvalidTransition(
            current_stage=stage, current_status=status, action=action,
        ) from None

    if action.value in STAGE_ACTIONS:
        target = STAGE_TRANSITIONS.get(_key(stage, action))
        if target is _HELD_STAGE:
            target = stage_before_hold or None
        if target is None:
            raise InvalidTransition(
                current_stage=stage, current_status=status, action=action.value,
            )
        return WorkflowState(stage=Stage(target).value, status=str(status))

    target = STATUS_TRANSITIONS.get(_key(status, action))
    if target is None or stage == Stage.CANCELLED:
        raise InvalidTransition(
            current_stage=stage, current_status=status, action=action.value,
        )
    return WorkflowState(stage=str(stage), status=target.value)


def allowed_actions(stage: str, status: str, stage_before_hold: str = '') -> list[str]:
    """Every action resolve() would accept right now, in declaration order."""
    allowed = []
    for action in Action:
        try:
            resolve(stage, status, action, stage_before_hold)
        except InvalidTransition:
            continue
        allowed.append(action.value)
    return allowed
