import pandas as pd
import variables


class PlacementFailure:
    """A module that could not be placed. Reported, never raised."""
    def __init__(self, module_name, reason):
        self.module_name = module_name
        self.reason = reason

    def __str__(self):
        return f"PlacementFailure({self.module_name}: {self.reason})"

    def __repr__(self):
        return str(self)

    def __eq__(self, other):
        return (isinstance(other, PlacementFailure)
                and self.module_name == other.module_name and self.reason == other.reason)


class PlacementAssignment:
    """
    The three correlated placement tables:
        module_to_devices:     module name -> [device id, ...]
        device_to_modules:     device id -> [AppModule, ...]
        module_instance_count: device id -> {module name: instance count}

    Each module is recorded at most once. Once sealed by the engine the
    assignment is read-only.
    """
    def __init__(self, devices=()):
        self._module_to_devices = {}
        self._device_to_modules = {}
        # Initialize module instance count map for all devices
        self._module_instance_count = {device.id: {} for device in devices}
        self.failures = []  # PlacementFailure, one per unplaced module
        self.warnings = []  # non-fatal reports (e.g. skipped devices)
        self.sealed = False

    def __str__(self):
        return (f"PlacementAssignment(Placed:{len(self._module_to_devices)}, "
                f"Unplaced:{len(self.failures)})")

    def _check_writable(self, module_name):
        if self.sealed:
            raise RuntimeError(f"Placement is sealed, cannot record {module_name}")
        if module_name in self._module_to_devices or module_name in self.unplaced_modules():
            raise ValueError(f"Module {module_name} has already been recorded")

    def record(self, module, fragment):
        """Records the instances of one module: fragment is {device id: instance count}."""
        self._check_writable(module.name)
        self._module_to_devices[module.name] = list(fragment)
        for device_id, count in fragment.items():
            self._device_to_modules.setdefault(device_id, []).append(module)
            self._module_instance_count.setdefault(device_id, {})[module.name] = count

    def record_failure(self, failure):
        self._check_writable(failure.module_name)
        self.failures.append(failure)

    def seal(self):
        self.sealed = True

    @property
    def module_to_devices(self):
        return {name: list(ids) for name, ids in self._module_to_devices.items()}

    @property
    def device_to_modules(self):
        return {device_id: list(modules) for device_id, modules in self._device_to_modules.items()}

    @property
    def module_instance_count(self):
        return {device_id: dict(counts) for device_id, counts in self._module_instance_count.items()}

    def devices_for(self, module_name):
        return list(self._module_to_devices.get(module_name, []))

    def modules_on(self, device_id):
        return list(self._device_to_modules.get(device_id, []))

    def instance_count(self, device_id, module_name):
        return self._module_instance_count.get(device_id, {}).get(module_name, 0)

    def is_placed(self, module_name):
        return module_name in self._module_to_devices

    def unplaced_modules(self):
        return [failure.module_name for failure in self.failures]

    def to_dataframe(self, topology=None):
        """One row per (module, device) placement."""
        rows = []
        for module_name, device_ids in self._module_to_devices.items():
            for device_id in device_ids:
                device = topology.device_by_id(device_id) if topology is not None else None
                rows.append({
                    'module': module_name,
                    'device_id': device_id,
                    'device': device.name if device else None,
                    'level': device.level if device else None,
                    'instances': self.instance_count(device_id, module_name),
                })
        return pd.DataFrame(rows, columns=['module', 'device_id', 'device', 'level', 'instances'])


class PlacementEngine:
    """Runs a placement policy over every module of an application, once."""

    def place(self, application, topology, policy):
        """
        Place every module of the application with the given policy.

        Args:
            application: Application whose modules are placed (sealed by this call)
            topology: Topology of candidate devices
            policy: PlacementPolicy instance

        Returns:
            PlacementAssignment: best-effort assignment; unplaced modules are
            listed in its failures

        Raises:
            ConfigurationError: if the policy's explicit mapping is invalid
        """
        application.seal()
        policy.validate(application, topology)
        assignment = PlacementAssignment(topology.devices)

        if variables.VERBOSE:
            print("=" * 40)
            print(f"{policy.name} - Starting Module Placement of {application.app_id}")
            print("=" * 40)

        for module in application.modules():
            result = policy.place_module(module, application, topology)
            if isinstance(result, PlacementFailure):
                print(f"ERROR: Could not place module {module.name}: {result.reason}")
                assignment.record_failure(result)
            else:
                assignment.record(module, result)

        assignment.warnings.extend(policy.drain_warnings())
        assignment.seal()

        if variables.VERBOSE:
            print("=" * 40)
            print(f"{policy.name} - Placement Complete: {assignment}")
            print("=" * 40)
        return assignment
