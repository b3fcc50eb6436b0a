"""Tool interface shared by every external tool collaborator."""

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from pydantic import BaseModel

from sarthi.models import ToolName


class Tool(ABC):
    """One external tool with a declared argument model.

    Subclasses set ``name``, ``description`` and ``args_model`` and
    implement ``run``.
    """

    name: ClassVar[ToolName]
    description: ClassVar[str]
    args_model: ClassVar[type[BaseModel]]

    def parse_args(self, args: dict[str, Any] | None) -> BaseModel:
        """Validate raw arguments against the tool's argument model."""
        return self.args_model.model_validate(args or {})

    @abstractmethod
    async def run(self, args: BaseModel) -> Any:
        """Execute the tool and return its data."""

    async def aclose(self) -> None:
        """Release any held resources."""

    def definition(self) -> dict[str, Any]:
        """JSON-schema tool definition for model function calling."""
        return {
            "name": self.name.value,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(),
        }
