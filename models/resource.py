"""
Resource model for the Resource Allocation Graph Simulator.

Represents a resource type with a fixed number of identical instances.
"""

from dataclasses import dataclass


def clamp_instances(instances) -> int:
    """
    Normalize an instance count to a positive integer.

    Non-numeric or non-positive values fall back to 1, matching the
    behaviour of the interactive simulator controls.
    """
    try:
        value = int(instances)
    except (TypeError, ValueError, OverflowError):
        return 1
    return max(1, value)


@dataclass(frozen=True)
class Resource:
    """
    Represents a resource type in the allocation graph.

    Attributes:
        name: Unique resource identifier
        total_instances: Total number of instances (fixed at creation, >= 1)

    Invariant:
        total_instances >= 1
    """
    name: str
    total_instances: int = 1

    def __post_init__(self):
        """Clamp the instance count so every resource has at least one unit."""
        object.__setattr__(self, 'total_instances', clamp_instances(self.total_instances))

    @property
    def is_single_instance(self) -> bool:
        """
        True for resources with exactly one instance.

        A wait-for cycle made only of single-instance edges is a definite
        deadlock.
        """
        return self.total_instances == 1

    def to_record(self) -> dict:
        """Serializable form used by stats and trace export."""
        return {'name': self.name, 'total': self.total_instances}
