from dataclasses import dataclass
from typing import List, Optional, Tuple

import networkx as nx

from errors import ConfigurationError
import variables
from variables import DEFAULT_MODULE_MIPS, DEFAULT_MODULE_RAM

# Tuple directions
UP = "UP"
DOWN = "DOWN"
DIRECTIONS = (UP, DOWN)

# Edge categories
SENSOR = "SENSOR"
MODULE = "MODULE"
ACTUATOR = "ACTUATOR"
EDGE_TYPES = (SENSOR, MODULE, ACTUATOR)


@dataclass(frozen=True)
class AppModule:
    """A logical stream-processing unit of an application."""
    name: str
    mips: float = DEFAULT_MODULE_MIPS
    ram: float = DEFAULT_MODULE_RAM


@dataclass(frozen=True)
class AppEdge:
    """
    Data flow between two endpoints of an application.

    Attributes:
        source: Module name, or the sensor tuple type for SENSOR edges
        destination: Module name, or the actuator type for ACTUATOR edges
        tuple_cpu_length: Compute cost (MI) of one tuple at the destination
        tuple_nw_length: Network cost (bandwidth units) of one tuple
        tuple_type: Label of the tuples carried on this edge
        direction: UP (toward the cloud) or DOWN (toward the edge)
        edge_type: SENSOR, MODULE or ACTUATOR
    """
    source: str
    destination: str
    tuple_cpu_length: float
    tuple_nw_length: float
    tuple_type: str
    direction: str = UP
    edge_type: str = MODULE


@dataclass(frozen=True)
class TupleMapping:
    """Selectivity of a module: output tuples emitted per input tuple."""
    module: str
    input_tuple_type: str
    output_tuple_type: str
    fraction: float = 1.0


@dataclass(frozen=True)
class AppLoop:
    """An end-to-end path through modules, used for latency bookkeeping."""
    modules: Tuple[str, ...]

    @property
    def loop_id(self):
        return "->".join(self.modules)

    def starts_with(self, module_name):
        return bool(self.modules) and self.modules[0] == module_name

    def ends_with(self, module_name):
        return bool(self.modules) and self.modules[-1] == module_name


class Application:
    """Module/edge/selectivity/loop model of one application.

    Every build call is validated immediately. The first ConfigurationError
    aborts the build: the graph then refuses any further build call.
    """
    def __init__(self, app_id):
        self.app_id = app_id
        self.graph = nx.MultiDiGraph()  # endpoints -> edges, keyed by tuple type
        self._modules = {}  # name -> AppModule, in insertion order
        self.edges: List[AppEdge] = []
        self.tuple_mappings: List[TupleMapping] = []
        self.loops: List[AppLoop] = []
        self.sealed = False
        self._build_error: Optional[ConfigurationError] = None

    def __str__(self):
        return (f"Application_{self.app_id}(Modules:{len(self._modules)}, "
                f"Edges:{len(self.edges)}, Loops:{len(self.loops)})")

    def _check_buildable(self):
        if self._build_error is not None:
            raise ConfigurationError(
                f"Application {self.app_id} build was aborted by an earlier error: {self._build_error}")
        if self.sealed:
            raise ConfigurationError(f"Application {self.app_id} is sealed and can no longer be modified")

    def _fail(self, message):
        self._build_error = ConfigurationError(message)
        raise self._build_error

    def _require_module(self, name, role):
        if name not in self._modules:
            self._fail(f"{role} references unknown module '{name}' in application {self.app_id}")

    def add_app_module(self, name, mips=DEFAULT_MODULE_MIPS, ram=DEFAULT_MODULE_RAM):
        self._check_buildable()
        if name in self._modules:
            self._fail(f"Module '{name}' already exists in application {self.app_id}")
        if mips < 0 or ram < 0:
            self._fail(f"Module '{name}' has negative requirements (mips={mips}, ram={ram})")
        module = AppModule(name, mips, ram)
        self._modules[name] = module
        self.graph.add_node(name, kind=MODULE)
        return module

    def add_app_edge(self, source, destination, tuple_cpu_length, tuple_nw_length,
                     tuple_type, direction=UP, edge_type=MODULE):
        self._check_buildable()
        if direction not in DIRECTIONS:
            self._fail(f"Unknown tuple direction: {direction}")
        if edge_type not in EDGE_TYPES:
            self._fail(f"Unknown edge type: {edge_type}")
        # SENSOR edges start at a tuple type, ACTUATOR edges end at an actuator type
        if edge_type != SENSOR:
            self._require_module(source, f"Edge {source}->{destination}")
        if edge_type != ACTUATOR:
            self._require_module(destination, f"Edge {source}->{destination}")

        edge = AppEdge(source, destination, tuple_cpu_length, tuple_nw_length,
                       tuple_type, direction, edge_type)
        if self.graph.has_edge(source, destination, key=tuple_type):
            self._fail(f"Edge {source}->{destination} already carries {tuple_type} tuples")
        if source not in self.graph:
            self.graph.add_node(source, kind=SENSOR)
        if destination not in self.graph:
            self.graph.add_node(destination, kind=ACTUATOR)
        self.graph.add_edge(source, destination, key=tuple_type, edge=edge, order=len(self.edges))
        self.edges.append(edge)
        return edge

    def add_tuple_mapping(self, module_name, input_tuple_type, output_tuple_type, fraction=1.0):
        self._check_buildable()
        self._require_module(module_name, f"Tuple mapping {input_tuple_type}->{output_tuple_type}")
        if fraction < 0:
            self._fail(f"Selectivity of {module_name} must be non-negative, got {fraction}")
        mapping = TupleMapping(module_name, input_tuple_type, output_tuple_type, fraction)
        self.tuple_mappings.append(mapping)
        return mapping

    def add_loop(self, modules):
        self._check_buildable()
        loop = AppLoop(tuple(modules))
        self.loops.append(loop)
        return loop

    def seal(self):
        """Ends the build phase. Called by the placement engine."""
        if not self.sealed and variables.VERBOSE:
            print(f"Application sealed: {self}")
        self.sealed = True

    def modules(self):
        return list(self._modules.values())

    def get_module(self, name):
        return self._modules.get(name)

    def has_module(self, name):
        return name in self._modules

    def _graph_edges(self, edge_view):
        # edge_view yields (u, v, data); returned in insertion order
        return [data['edge'] for _, _, data in sorted(edge_view, key=lambda e: e[2]['order'])]

    def edges_from(self, name):
        if name not in self.graph:
            return []
        return self._graph_edges(self.graph.out_edges(name, data=True))

    def edges_to(self, name):
        if name not in self.graph:
            return []
        return self._graph_edges(self.graph.in_edges(name, data=True))

    def loops_containing(self, name):
        return [loop for loop in self.loops if name in loop.modules]

    def tuple_mappings_for(self, module_name, input_tuple_type):
        return [mapping for mapping in self.tuple_mappings
                if mapping.module == module_name and mapping.input_tuple_type == input_tuple_type]

    def sensor_edges(self, tuple_type):
        """SENSOR edges fed by sensors emitting tuple_type."""
        return [edge for edge in self.edges_from(tuple_type) if edge.edge_type == SENSOR]
