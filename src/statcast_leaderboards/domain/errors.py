from dataclasses import dataclass


@dataclass(frozen=True)
class EngineError:
    message: str


@dataclass(frozen=True)
class UnknownMetric(EngineError):
    metric: str


@dataclass(frozen=True)
class UnknownDimension(EngineError):
    dimension: str


@dataclass(frozen=True)
class InvalidFilterOperator(EngineError):
    column: str
    operator: str


@dataclass(frozen=True)
class InvalidNumericLiteral(EngineError):
    column: str
    raw_value: str


@dataclass(frozen=True)
class ConfigError(EngineError):
    invalid_keys: tuple[str, ...] = ()


def unknown_metric(name: str) -> UnknownMetric:
    return UnknownMetric(message=f"Unknown metric: {name}", metric=name)


def unknown_dimension(name: str) -> UnknownDimension:
    return UnknownDimension(message=f"Unknown group: {name}", dimension=name)
