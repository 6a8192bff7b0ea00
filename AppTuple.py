class AppTuple:
    """Represents a unit of data flowing along an application edge."""
    def __init__(self, tuple_id, edge, emit_time, source_device_id, trace=()):
        self.id = tuple_id
        self.tuple_type = edge.tuple_type
        self.src_module = edge.source
        self.dst_module = edge.destination
        self.cpu_length = edge.tuple_cpu_length
        self.nw_length = edge.tuple_nw_length
        self.direction = edge.direction
        self.edge_type = edge.edge_type
        self.emit_time = emit_time  # time the originating sensor tuple was emitted
        self.source_device_id = source_device_id  # device of the originating sensor
        self.trace = list(trace)  # modules already traversed by this tuple's lineage
        self.current_device_id = None
        self.network_delay = 0.0
        self.state = "Pending"  # "Pending", "Transmitting", "Processing", "Finished" or "Dropped"

    def __str__(self):
        return f"Tuple_{self.id} [{self.tuple_type}: {self.src_module} -> {self.dst_module}]"

    def consumer_id(self, src_device_id, dst_device_id):
        """Bandwidth ledger key of this tuple on one link."""
        return f"tuple-{self.id}:{src_device_id}->{dst_device_id}"
