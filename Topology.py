import json
import itertools
import networkx as nx
from FogDevice import FogDevice
from errors import ConfigurationError
import variables
from variables import CLOUD_LEVEL, ROOT_PARENT_ID, DEFAULT_DEVICE_BW, OVERBOOKING_RATIO_BW


class Topology:
    """Read-only view over a tree of fog devices.

    Devices are kept in construction order; the tree itself is stored as a
    networkx DiGraph with edges from parent to child.
    """
    def __init__(self, devices):
        self.devices = list(devices)
        self.graph = nx.DiGraph()
        self._by_id = {}
        self._by_name = {}
        # Add a path cache
        self.path_cache = {}  # Format: (src, dst) -> path

        for device in self.devices:
            if device.id in self._by_id:
                raise ConfigurationError(f"Duplicate device id {device.id} ({device.name})")
            self._by_id[device.id] = device
            # First device wins for name lookups
            self._by_name.setdefault(device.name, device)
            self.graph.add_node(device.id, level=device.level, name=device.name)

        for device in self.devices:
            if device.parent_id == ROOT_PARENT_ID:
                continue
            if device.parent_id not in self._by_id:
                raise ConfigurationError(
                    f"Device {device.name} references unknown parent id {device.parent_id}")
            self.graph.add_edge(device.parent_id, device.id, latency=device.uplink_latency)

        if not nx.is_directed_acyclic_graph(self.graph):
            cycle = nx.find_cycle(self.graph)
            raise ConfigurationError(f"Device hierarchy contains a cycle: {cycle}")

        if variables.VERBOSE:
            print(f"Topology initialized with {len(self.devices)} devices on levels {self.levels()}.")

    @classmethod
    def from_config(cls, config):
        """Builds a topology from a {"nodes": [...]} description.

        Each node names its parent by name (null for the root). Device ids are
        assigned in file order.
        """
        id_counter = itertools.count()
        devices = []
        ids_by_name = {}
        for node in config.get('nodes', []):
            name = node['name']
            parent_name = node.get('parent')
            if parent_name is None:
                parent_id = ROOT_PARENT_ID
            elif parent_name in ids_by_name:
                parent_id = ids_by_name[parent_name]
            else:
                raise ConfigurationError(
                    f"Node {name} references parent {parent_name} which is not defined before it")
            device = FogDevice(next(id_counter), name, node['level'],
                               mips=node['mips'],
                               ram=node['ram'],
                               parent_id=parent_id,
                               uplink_latency=node.get('uplink_latency', 0.0),
                               uplink_bandwidth=node.get('uplink_bandwidth', 10000),
                               downlink_bandwidth=node.get('downlink_bandwidth', 10000),
                               bw=node.get('bw', DEFAULT_DEVICE_BW),
                               overbooking_ratio=node.get('overbooking_ratio', OVERBOOKING_RATIO_BW))
            ids_by_name[name] = device.id
            devices.append(device)
        return cls(devices)

    @classmethod
    def from_json(cls, path):
        # Load node data from JSON
        with open(path, 'r') as f:
            config = json.load(f)
        return cls.from_config(config)

    def __len__(self):
        return len(self.devices)

    def devices_at_level(self, level):
        """Get all devices at a specific hierarchy level, in construction order."""
        return [device for device in self.devices if device.level == level]

    def device_by_id(self, device_id):
        return self._by_id.get(device_id)

    def device_by_name(self, name):
        return self._by_name.get(name)

    def root(self):
        """Returns the first level-0 device, or None if the topology has none."""
        for device in self.devices:
            if device.level == CLOUD_LEVEL:
                return device
        return None

    def parent(self, device_id):
        """Parent device, or None for the root or an unknown id."""
        device = self._by_id.get(device_id)
        if device is None:
            return None
        return self._by_id.get(device.parent_id)

    def children(self, device_id):
        return [self._by_id[child] for child in self.graph.successors(device_id)]

    def levels(self):
        return sorted({device.level for device in self.devices})

    def max_level(self):
        """Deepest level present, or None for an empty topology."""
        levels = self.levels()
        return levels[-1] if levels else None

    def get_cached_path(self, src, dst):
        return self.path_cache.get((src, dst))

    def save_cached_path(self, src, dst, path):
        self.path_cache[(src, dst)] = path
        self.path_cache[(dst, src)] = path[::-1]

    def path(self, src, dst):
        """Tree path between two devices as a list of device ids, or None."""
        if src == dst:
            return [src]
        path = self.get_cached_path(src, dst)
        if path:
            return path
        try:
            path = nx.shortest_path(self.graph.to_undirected(as_view=True), src, dst)
        except (nx.NetworkXNoPath, nx.NodeNotFound):
            return None
        self.save_cached_path(src, dst, path)
        return path

    def hop_distance(self, src, dst):
        path = self.path(src, dst)
        return len(path) - 1 if path else None

    def link_latency(self, a, b):
        """Latency of the link between two adjacent devices (the child's uplink latency)."""
        if self.graph.has_edge(a, b):
            return self.graph[a][b]['latency']
        if self.graph.has_edge(b, a):
            return self.graph[b][a]['latency']
        raise ValueError(f"Devices {a} and {b} are not adjacent")
