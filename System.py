import math
import random
import itertools
import pandas as pd
from Application import ACTUATOR
from AppTuple import AppTuple
import variables
from variables import RANDOM_SEED


class System:
    """Drives application traffic over a placed application.

    Sensors emit tuples, tuples are routed to the nearest device hosting their
    destination module, every link they cross reserves bandwidth on the
    sending device's provisioner for the duration of the transmission.
    """
    def __init__(self, env, topology, application, assignment, sensors=(), actuators=(), seed=RANDOM_SEED):
        self.env = env
        self.topology = topology
        self.application = application
        self.assignment = assignment
        self.sensors = list(sensors)
        self.actuators = list(actuators)
        self.rng = random.Random(seed)
        self.tuple_id_counter = itertools.count()
        self.deployed = {}  # (device id, module name) -> running instances

        self.stats = {
            'instances_deployed': 0,
            'instances_rejected': 0,
            'tuples_emitted': 0,
            'tuples_transmitted': 0,
            'tuples_processed': 0,
            'blocked_no_bandwidth': 0,  # a link could not reserve the tuple's bandwidth
            'dropped_no_host': 0,       # destination module is not placed anywhere
            'dropped_no_path': 0,
            'dropped_not_deployed': 0,  # placed, but the device rejected the instance
            'dropped_no_actuator': 0,
            'actuations': 0,
        }
        self.module_stats = {module.name: {'processed': 0} for module in application.modules()}
        self.loop_latencies = {loop.loop_id: [] for loop in application.loops}

    def deploy(self):
        """Creates every placed module instance through the hosting device's admission check."""
        for device_id, counts in self.assignment.module_instance_count.items():
            device = self.topology.device_by_id(device_id)
            for module_name, count in counts.items():
                module = self.application.get_module(module_name)
                if device.allocate_module(module, count):
                    self.deployed[(device_id, module_name)] = count
                    self.stats['instances_deployed'] += count
                else:
                    self.stats['instances_rejected'] += count
                    print(f"WARNING: {device.name} rejected {count} instance(s) of {module_name}")

    def start(self):
        """Starts one emission process per sensor."""
        for sensor in self.sensors:
            if sensor.distribution.rng is None:
                sensor.distribution.rng = self.rng
            self.env.process(self.sensor_generator(sensor))

    def sensor_generator(self, sensor):
        """Emits tuples of a sensor according to its distribution."""
        edges = self.application.sensor_edges(sensor.tuple_type)
        while True:
            yield self.env.timeout(sensor.distribution.next_value())
            for edge in edges:
                app_tuple = AppTuple(next(self.tuple_id_counter), edge, self.env.now, sensor.device_id)
                self.stats['tuples_emitted'] += 1
                if variables.VERBOSE:
                    print(f"{self.env.now:.2f} - Tuple Emitted: {app_tuple} by {sensor}")
                self.env.process(self.handle_tuple(app_tuple, sensor.device_id, sensor.latency))

    def resolve_device(self, module_name, from_device_id):
        """Nearest device (in tree hops) hosting module_name, or None."""
        best_device = None
        best_distance = math.inf
        for device_id in self.assignment.devices_for(module_name):
            distance = self.topology.hop_distance(from_device_id, device_id)
            if distance is not None and distance < best_distance:
                best_distance = distance
                best_device = self.topology.device_by_id(device_id)
        return best_device

    def find_actuator(self, actuator_type, near_device_id):
        best_actuator = None
        best_distance = math.inf
        for actuator in self.actuators:
            if actuator.actuator_type != actuator_type:
                continue
            distance = self.topology.hop_distance(near_device_id, actuator.device_id)
            if distance is not None and distance < best_distance:
                best_distance = distance
                best_actuator = actuator
        return best_actuator

    def handle_tuple(self, app_tuple, from_device_id, initial_delay=0.0):
        """Routes a tuple to its destination module and processes it there."""
        if initial_delay > 0:
            yield self.env.timeout(initial_delay)

        target = self.resolve_device(app_tuple.dst_module, from_device_id)
        if target is None:
            app_tuple.state = "Dropped"
            self.stats['dropped_no_host'] += 1
            return

        admitted = yield self.env.process(self.transmit(app_tuple, from_device_id, target.id))
        if not admitted:
            return
        yield self.env.process(self.execute(app_tuple, target))

    def transmit(self, app_tuple, src_id, dst_id):
        """Moves a tuple hop by hop; each hop holds a reservation on the sender.
        Returns True if the tuple reached dst_id."""
        path = self.topology.path(src_id, dst_id)
        if path is None:
            app_tuple.state = "Dropped"
            self.stats['dropped_no_path'] += 1
            return False

        app_tuple.state = "Transmitting"
        amount = math.ceil(app_tuple.nw_length)
        for a, b in zip(path, path[1:]):
            sender = self.topology.device_by_id(a)
            consumer_id = app_tuple.consumer_id(a, b)
            if not sender.bw_provisioner.allocate(consumer_id, amount):
                app_tuple.state = "Dropped"
                self.stats['blocked_no_bandwidth'] += 1
                if variables.VERBOSE:
                    print(f"{self.env.now:.2f} - Link {a}->{b} blocked {app_tuple}: {sender.bw_provisioner}")
                return False

            link_bandwidth = sender.uplink_bandwidth if sender.parent_id == b else sender.downlink_bandwidth
            delay = self.topology.link_latency(a, b)
            if link_bandwidth > 0:
                delay += app_tuple.nw_length / link_bandwidth
            yield self.env.timeout(delay)
            sender.bw_provisioner.deallocate(consumer_id)
            app_tuple.network_delay += delay

        app_tuple.current_device_id = dst_id
        self.stats['tuples_transmitted'] += 1
        return True

    def execute(self, app_tuple, device):
        """Processes a tuple on device and emits the module's output tuples."""
        module = self.application.get_module(app_tuple.dst_module)
        if (device.id, module.name) not in self.deployed:
            app_tuple.state = "Dropped"
            self.stats['dropped_not_deployed'] += 1
            return

        app_tuple.state = "Processing"
        processing_time = app_tuple.cpu_length / module.mips if module.mips > 0 else 0.0
        yield self.env.timeout(processing_time)
        app_tuple.state = "Finished"
        self.stats['tuples_processed'] += 1
        self.module_stats[module.name]['processed'] += 1
        if variables.VERBOSE:
            print(f"{self.env.now:.2f} - Tuple Processed: {app_tuple} on {device.name}")

        trace = app_tuple.trace + [module.name]
        self.record_loops(app_tuple, trace)

        for mapping in self.application.tuple_mappings_for(module.name, app_tuple.tuple_type):
            for _ in range(self.emit_count(mapping.fraction)):
                for edge in self.application.edges_from(module.name):
                    if edge.tuple_type != mapping.output_tuple_type:
                        continue
                    out_tuple = AppTuple(next(self.tuple_id_counter), edge, app_tuple.emit_time,
                                         app_tuple.source_device_id, trace)
                    if edge.edge_type == ACTUATOR:
                        self.env.process(self.actuate(out_tuple, device.id))
                    else:
                        self.env.process(self.handle_tuple(out_tuple, device.id))

    def actuate(self, app_tuple, from_device_id):
        actuator = self.find_actuator(app_tuple.dst_module, app_tuple.source_device_id)
        if actuator is None:
            app_tuple.state = "Dropped"
            self.stats['dropped_no_actuator'] += 1
            return
        admitted = yield self.env.process(self.transmit(app_tuple, from_device_id, actuator.device_id))
        if not admitted:
            return
        yield self.env.timeout(actuator.latency)
        app_tuple.state = "Finished"
        self.stats['actuations'] += 1

    def emit_count(self, fraction):
        """Output tuples for one input: the integer part always, the rest with matching probability."""
        whole = int(fraction)
        remainder = fraction - whole
        return whole + (1 if self.rng.random() < remainder else 0)

    def record_loops(self, app_tuple, trace):
        for loop in self.application.loops:
            if loop.ends_with(trace[-1]) and loop.modules[0] in trace:
                self.loop_latencies[loop.loop_id].append(self.env.now - app_tuple.emit_time)

    def loop_latency_frame(self):
        """Per-loop latency summary (count, mean, min, max)."""
        rows = [{'loop': loop_id, 'latency': latency}
                for loop_id, latencies in self.loop_latencies.items() for latency in latencies]
        if not rows:
            return pd.DataFrame(columns=['loop', 'count', 'mean', 'min', 'max'])
        df = pd.DataFrame(rows)
        summary = df.groupby('loop')['latency'].agg(['count', 'mean', 'min', 'max']).reset_index()
        return summary
