from typing import Dict, Any, Iterable


class Tool:
    """
    Base class for provisioning tools.

    Subclasses implement run() and return a dictionary with:
        name, status, command, output, details
    """
    def __init__(self, name: str, description: str, parameters: Dict[str, Any] | None = None):
        self.name: str = name
        self.description: str = description
        self.parameters = parameters or {}

    def get_info(self) -> Dict[str, Any]:
        return {
            "toolName": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def run(self, *args, **kwargs) -> Dict[str, Any]:
        """Must be implemented by subclasses."""
        raise NotImplementedError

    def _success(self, command: str, details: str, logs: Iterable[str], **extra: Any) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "status": "Success",
            "command": command,
            "output": "\n".join(filter(None, logs)),
            "details": details,
        }
        result.update(extra)
        return result

    def _failure(self, command: str, details: str, logs: Iterable[str], **extra: Any) -> Dict[str, Any]:
        result = {
            "name": self.name,
            "status": "Failed",
            "command": command,
            "output": "\n".join(filter(None, logs)),
            "details": details,
        }
        result.update(extra)
        return result
