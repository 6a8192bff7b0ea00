class Sensor:
    """Emits tuples of tuple_type into the device it is attached to."""
    def __init__(self, name, tuple_type, device_id, distribution, latency=1.0):
        self.name = name
        self.tuple_type = tuple_type
        self.device_id = device_id  # gateway device the sensor is attached to
        self.distribution = distribution
        self.latency = latency

    def __str__(self):
        return f"Sensor_{self.name}({self.tuple_type} -> device {self.device_id})"


class Actuator:
    """Consumes tuples addressed to actuator_type at the device it is attached to."""
    def __init__(self, name, actuator_type, device_id, latency=1.0):
        self.name = name
        self.actuator_type = actuator_type
        self.device_id = device_id
        self.latency = latency

    def __str__(self):
        return f"Actuator_{self.name}({self.actuator_type} @ device {self.device_id})"
