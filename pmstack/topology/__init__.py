from .builder import TopologyBuilder, build_topology
from .graph import DependencyGraph
from .loader import load_topology_spec
from .reference import patient_management_topology
from .registry import ResourceRegistry

__all__ = [
    "ResourceRegistry",
    "DependencyGraph",
    "TopologyBuilder",
    "build_topology",
    "load_topology_spec",
    "patient_management_topology",
]
