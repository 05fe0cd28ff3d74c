"""
aship Result Classes

Data structures returned by the ansible-playbook executor and the run
orchestrator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json


@dataclass
class ExecutionResult:
    """Outcome of one external ansible-playbook invocation."""

    success: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    # Wall clock seconds
    execution_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "success": self.success,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "execution_time": round(self.execution_time, 3),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class RunReport:
    """Everything the CLI needs to report after ``aship run``."""

    result: ExecutionResult
    inventory_path: Optional[str] = None
    mode: Optional[str] = None
    hosts: List[str] = field(default_factory=list)
    usage_recorded: bool = False

    @property
    def success(self) -> bool:
        return self.result.success

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "inventory": self.inventory_path,
            "mode": self.mode,
            "hosts": list(self.hosts),
            "usage_recorded": self.usage_recorded,
            "result": self.result.to_dict(),
        }
