"""Test definition data model shared by the parser, probes and enqueuer."""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class Test:
    """
    A single parsed test definition.

    ``input`` is the declarative line exactly as written. It is the payload
    pushed to the job queue, so parsing it again must give an equal Test.
    """
    __test__ = False  # not a pytest test class

    input: str
    target: str
    protocol: str
    arguments: Dict[str, str] = field(default_factory=dict)

    @property
    def declared_target(self) -> str:
        """The target as written: first whitespace-delimited token of the input."""
        parts = self.input.split()
        return parts[0] if parts else ''

    def to_dict(self) -> Dict[str, object]:
        """Convert test to dictionary for serialization."""
        return {
            'input': self.input,
            'target': self.target,
            'protocol': self.protocol,
            'arguments': dict(self.arguments),
        }


@dataclass(frozen=True)
class Options:
    """Run-time options applied to each probe invocation."""
    timeout: float = 10.0
