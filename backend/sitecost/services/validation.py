"""Boundary validation shared by the calculation engines."""
import logging
import math
from typing import Any, Mapping, Optional

logger = logging.getLogger("sitecost-rollup")


class CostRollupError(ValueError):
    """Base class for calculation errors raised at the engine boundary."""


class InvalidInput(CostRollupError):
    """A cost, budget or quantity is negative or not a finite number."""


class InvalidConfiguration(CostRollupError):
    """A rate configuration cannot produce a valid price (e.g. margin >= 100%)."""


def as_number(name: str, value: Any, error: type = InvalidInput) -> float:
    """Coerce ``value`` to a finite float or raise ``error``."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Rejected {name}: not a number ({value!r})")
        raise error(f"{name} must be a number; received {value!r}") from None
    if not math.isfinite(number):
        logger.warning(f"Rejected {name}: not finite ({value!r})")
        raise error(f"{name} must be a finite number; received {value!r}")
    return number


def non_negative(name: str, value: Any, error: type = InvalidInput) -> float:
    number = as_number(name, value, error)
    if number < 0:
        logger.warning(f"Rejected {name}: negative ({number})")
        raise error(f"{name} must be non-negative; received {number}")
    return number


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def pick(mapping: Mapping[str, Any], *keys: str) -> Optional[Any]:
    """First non-null value among ``keys``."""
    for key in keys:
        if key in mapping and mapping[key] is not None:
            return mapping[key]
    return None


def ensure_finite(operation: str, values: Mapping[str, Any]) -> None:
    """Raise InvalidInput if any calculated value overflowed to inf or NaN."""
    for name, value in values.items():
        if isinstance(value, (int, float)) and not math.isfinite(value):
            logger.warning(
                f"Rejected {operation}: {name} overflowed ({value})",
                extra={"operation": operation},
            )
            raise InvalidInput(
                f"inputs too large to calculate {operation}; {name} is not finite"
            )
