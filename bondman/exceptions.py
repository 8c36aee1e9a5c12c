"""
Exceptions for Bondman.

All business-rule outcomes are BondmanError subclasses with a structured
code for programmatic handling. They are safe to show to the end user.
"""

import logging
from decimal import Decimal
from typing import Any

logger = logging.getLogger('bondman')


class BondmanError(Exception):
    """
    Structured exception for ledger, allocation and workflow operations.

    Usage:
        try:
            preshipments.create('PS-1', entry_type, customer, items)
        except InsufficientAllocation as e:
            for shortfall in e.shortfalls:
                print(shortfall.part_id, shortfall.available)

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    default_code = 'ERROR'
    is_business_error = True

    _default_messages = {
        'ERROR': 'Operation failed',
        'VALIDATION_FAILED': 'Validation failed',
        'INSUFFICIENT_QUANTITY': 'Transaction would drive the lot negative',
        'INSUFFICIENT_ALLOCATION': 'Requested quantities exceed available-to-promise',
        'INVALID_TRANSITION': 'Action not allowed in the current state',
        'CONFLICT': 'Concurrent or duplicate write detected',
        'NOT_FOUND': 'Record not found',
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.data:
            return f"[{self.code}] {self.message}"
        details = ', '.join(f"{k}={v!r}" for k, v in self.data.items())
        return f"[{self.code}] {self.message} ({details})"

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {k: _plain(v) for k, v in self.data.items()},
        }


class ValidationError(BondmanError):
    """Malformed or missing input. `violations` lists every problem found."""

    default_code = 'VALIDATION_FAILED'

    @property
    def violations(self) -> list:
        return self.data.get('violations', [])


class InsufficientQuantity(BondmanError):
    """A ledger transaction would drive a lot below zero."""

    default_code = 'INSUFFICIENT_QUANTITY'

    @property
    def available(self) -> int:
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        return self.data.get('requested', 0)


class InsufficientAllocation(BondmanError):
    """Requested shipment quantities exceed available-to-promise."""

    default_code = 'INSUFFICIENT_ALLOCATION'

    @property
    def shortfalls(self) -> list:
        return self.data.get('shortfalls', [])


class InvalidTransition(BondmanError):
    """Action attempted outside its legal stage/status set."""

    default_code = 'INVALID_TRANSITION'

    @property
    def action(self) -> str | None:
        return self.data.get('action')


class ConflictError(BondmanError):
    """Duplicate submission or a lost race. Retrying is safe."""

    default_code = 'CONFLICT'


class NotFound(BondmanError):
    """Referenced lot, part, customer or shipment does not exist."""

    default_code = 'NOT_FOUND'


def as_result(operation, *args, **kwargs) -> dict[str, Any]:
    """
    Run an operation and return a structured result instead of raising.

    Business errors become {"success": False, "error": {...}}. Anything
    else is an infrastructure failure: logged with traceback and reported
    as INTERNAL_ERROR without exposing internals.
    """
    try:
        data = operation(*args, **kwargs)
    except BondmanError as exc:
        return {'success': False, 'error': exc.as_dict()}
    except Exception:
        logger.exception(
            "bondman.operation.failed",
            extra={"operation": getattr(operation, '__qualname__', repr(operation))},
        )
        return {
            'success': False,
            'error': {
                'code': 'INTERNAL_ERROR',
                'message': 'Internal error, please retry later',
                'data': {},
            },
        }
    return {'success': True, 'data': data}


def _plain(value):
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, 'as_dict'):
        return value.as_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value
