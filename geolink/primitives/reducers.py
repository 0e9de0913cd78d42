"""Reduction functions for aggregating matched values.

A reducer turns the values gathered for one SOURCE item (or one zone) into a
single value. Only reducers that declare an ``empty`` value are defined on an
empty input; for every other reducer an empty input is an error the caller
has to handle.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

import numpy as np

from geolink.utils.errors import EmptyReductionError, ParameterError

_UNDEFINED = object()


@dataclass(frozen=True)
class Reducer:
    """Named reduction with optional weighted form.

    Attributes:
        name: Reducer name used in results and column names.
        func: Unweighted reduction ``func(values) -> value``.
        weighted_func: Area-weighted reduction ``weighted_func(values,
            weights) -> value``, or None if the reducer has no weighted form.
        empty: Result on an empty input. Left unset, the reducer is
            undefined on an empty input.
    """

    name: str
    func: Optional[Callable[[np.ndarray], Any]]
    weighted_func: Optional[Callable[[np.ndarray, np.ndarray], Any]] = None
    empty: Any = _UNDEFINED

    @property
    def defines_empty(self) -> bool:
        return self.empty is not _UNDEFINED

    @property
    def supports_weights(self) -> bool:
        return self.weighted_func is not None

    def __call__(
        self, values: np.ndarray, weights: Optional[np.ndarray] = None
    ) -> Any:
        """Reduce ``values`` (optionally weighted).

        Raises:
            EmptyReductionError: If ``values`` is empty and the reducer
                defines no empty result.
            ParameterError: If weights are given to an unweighted reducer,
                or omitted for a weighted-only one.
        """
        values = np.asarray(values)
        if len(values) == 0:
            if self.defines_empty:
                return self.empty
            raise EmptyReductionError(
                f"Reducer '{self.name}' is undefined on an empty set of values",
                suggestion="Pass an explicit empty value, or use 'count'.",
            )
        if weights is None:
            if self.func is None:
                raise ParameterError(f"Reducer '{self.name}' requires weights")
            return self.func(values)
        if self.weighted_func is None:
            raise ParameterError(
                f"Reducer '{self.name}' has no area-weighted form",
                suggestion=f"Use one of: {', '.join(WEIGHTED_REDUCERS)}",
            )
        return self.weighted_func(values, np.asarray(weights, dtype=np.float64))


def _scalar(value: Any) -> Any:
    return value.item() if hasattr(value, "item") else value


def _weighted_sum(values: np.ndarray, weights: np.ndarray) -> float:
    return float(np.sum(values.astype(np.float64) * weights))


def _weighted_mean(values: np.ndarray, weights: np.ndarray) -> float:
    total = weights.sum()
    if total <= 0:
        raise EmptyReductionError("Weighted mean is undefined when all weights are zero")
    return float(np.sum(values.astype(np.float64) * weights) / total)


REDUCERS: dict[str, Reducer] = {
    "count": Reducer(
        "count", lambda v: int(len(v)), lambda v, w: float(w.sum()), empty=0
    ),
    "sum": Reducer("sum", lambda v: _scalar(np.sum(v)), _weighted_sum),
    "mean": Reducer("mean", lambda v: float(np.mean(v)), _weighted_mean),
    "median": Reducer("median", lambda v: float(np.median(v))),
    "min": Reducer("min", lambda v: _scalar(np.min(v))),
    "max": Reducer("max", lambda v: _scalar(np.max(v))),
    "std": Reducer("std", lambda v: float(np.std(v))),
}

WEIGHTED_REDUCERS = [name for name, r in REDUCERS.items() if r.supports_weights]


def get_reducer(
    spec: Union[str, Reducer, Callable], weighted: bool = False
) -> Reducer:
    """Resolve a reducer specification.

    Args:
        spec: Reducer name ('count', 'sum', 'mean', 'median', 'min', 'max',
            'std'), a Reducer, or a callable. A callable is treated as
            ``f(values)`` or, when ``weighted`` is True, ``f(values, weights)``.
        weighted: Whether the reducer will be called with weights.

    Returns:
        Reducer instance.

    Raises:
        ParameterError: If the name is unknown, or a weighted reducer is
            requested from one without a weighted form.
    """
    if isinstance(spec, Reducer):
        reducer = spec
    elif isinstance(spec, str):
        reducer = REDUCERS.get(spec.lower())
        if reducer is None:
            raise ParameterError(
                f"Unknown reducer: {spec!r}",
                suggestion=f"Choose one of: {', '.join(REDUCERS)}",
            )
    elif callable(spec):
        name = getattr(spec, "__name__", "custom")
        if weighted:
            return Reducer(name, None, spec)
        return Reducer(name, spec)
    else:
        raise ParameterError(f"Reducer must be a name or a callable, got {type(spec)}")

    if weighted and not reducer.supports_weights:
        raise ParameterError(
            f"Reducer '{reducer.name}' has no area-weighted form",
            suggestion=f"Use one of: {', '.join(WEIGHTED_REDUCERS)}",
        )
    return reducer
