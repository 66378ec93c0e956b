"""
Modeling commands and the command-manager interface.

Library functions that touch engine state build one `ModelingCommand` and
hand it to a `CommandManager`. Submission is fire-and-forget: the engine's
acknowledgement, if any, arrives out of band and is not modeled here.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .values import Point2D
from ..tokens import SourceRange

logger = logging.getLogger(__name__)


# --- Command payloads ---

@dataclass(frozen=True)
class StartPath:
    at: Point2D

    def to_json(self) -> Dict[str, Any]:
        return {"type": "start_path", "at": list(self.at)}


@dataclass(frozen=True)
class ExtendPath:
    path: str
    segment: Dict[str, Any]

    def to_json(self) -> Dict[str, Any]:
        return {"type": "extend_path", "path": self.path, "segment": dict(self.segment)}


@dataclass(frozen=True)
class ClosePath:
    path: str

    def to_json(self) -> Dict[str, Any]:
        return {"type": "close_path", "path": self.path}


@dataclass(frozen=True)
class Extrude:
    target: str
    distance: float
    cap: bool = True

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": "extrude",
            "target": self.target,
            "distance": self.distance,
            "cap": self.cap,
        }


CommandPayload = Union[StartPath, ExtendPath, ClosePath, Extrude]


@dataclass(frozen=True)
class ModelingCommand:
    """One engine request: deterministic id, originating range and payload."""
    id: str
    range: SourceRange
    cmd: CommandPayload

    @property
    def type(self) -> str:
        return self.cmd.to_json()["type"]

    def to_json(self) -> Dict[str, Any]:
        return {
            "type": "modeling_cmd_req",
            "cmd_id": self.id,
            "range": [self.range[0], self.range[1]],
            "cmd": self.cmd.to_json(),
        }


# --- Managers ---

class CommandManager(ABC):
    """Interface to the external engine."""

    @abstractmethod
    def send_modeling_command(self, command: ModelingCommand) -> None:
        """Submit `command`; nothing is returned synchronously."""
        pass


@dataclass
class RecordingCommandManager(CommandManager):
    """Keeps every submitted command, in submission order."""
    commands: List[ModelingCommand] = field(default_factory=list)

    def send_modeling_command(self, command: ModelingCommand) -> None:
        logger.debug("command %s %s at %s", command.type, command.id, list(command.range))
        self.commands.append(command)

    def ids(self) -> List[str]:
        return [command.id for command in self.commands]

    def clear(self) -> None:
        self.commands.clear()

    def __len__(self) -> int:
        return len(self.commands)


class NullCommandManager(CommandManager):
    """Drops every command (scratch passes)."""

    def send_modeling_command(self, command: ModelingCommand) -> None:
        pass
