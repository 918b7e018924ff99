from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ParamType = Literal["text", "textarea", "select", "switch", "json"]


def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return not value
    return False


@dataclass(slots=True)
class ParamSpec:
    name: str
    label: str
    type: ParamType = "text"
    required: bool = False
    options: tuple[str, ...] = ()
    default: Any = None
    description: str = ""

    def __post_init__(self) -> None:
        if self.type == "select" and not self.options:
            raise ValueError(f"select parameter '{self.name}' needs options")

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.options:
            data["options"] = list(self.options)
        if self.default is not None:
            data["default"] = self.default
        if self.description:
            data["description"] = self.description
        return data


@dataclass(slots=True, frozen=True)
class SwapFields:
    """Config keys a swap-capable action uses for its trade parameters."""

    input_key: str
    output_key: str
    amount_key: str
    slippage_key: str
    slippage_unit: Literal["bps", "pct"] = "bps"


@dataclass(slots=True)
class ActionSpec:
    type_name: str
    label: str
    description: str
    category: str
    parameters: tuple[ParamSpec, ...] = ()
    swap_fields: SwapFields | None = None
    _by_name: dict[str, ParamSpec] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._by_name = {param.name: param for param in self.parameters}

    @property
    def is_swap(self) -> bool:
        return self.swap_fields is not None

    def param(self, name: str) -> ParamSpec | None:
        return self._by_name.get(name)

    def required_params(self) -> list[ParamSpec]:
        return [param for param in self.parameters if param.required]

    def default_config(self) -> dict[str, Any]:
        return {param.name: param.default for param in self.parameters if param.default is not None}

    def missing_fields(self, config: dict[str, Any]) -> list[ParamSpec]:
        return [param for param in self.required_params() if is_empty_value(config.get(param.name))]

    def describe(self, config: dict[str, Any]) -> str:
        parts: list[str] = []
        for key, value in config.items():
            if is_empty_value(value):
                continue
            param = self._by_name.get(key)
            parts.append(f"{param.label if param else key}: {value}")
        return ", ".join(parts)

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "label": self.label,
            "description": self.description,
            "category": self.category,
            "parameters": [param.as_dict() for param in self.parameters],
            "default_config": self.default_config(),
        }


class ActionRegistry:
    def __init__(self) -> None:
        self._actions: dict[str, ActionSpec] = {}

    def register(self, spec: ActionSpec) -> None:
        self._actions[spec.type_name] = spec

    def get(self, type_name: str) -> ActionSpec:
        if type_name not in self._actions:
            raise KeyError(f"Unknown action type: {type_name}")
        return self._actions[type_name]

    def find(self, type_name: str | None) -> ActionSpec | None:
        if type_name is None:
            return None
        return self._actions.get(type_name)

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._actions

    def list_types(self) -> list[str]:
        return sorted(self._actions)

    def list_specs(self) -> list[dict[str, Any]]:
        return [self._actions[key].as_dict() for key in sorted(self._actions)]

    def swap_types(self) -> list[str]:
        return [key for key in sorted(self._actions) if self._actions[key].is_swap]
