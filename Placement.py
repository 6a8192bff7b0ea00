import abc
import fnmatch
from errors import ConfigurationError
from PlacementEngine import PlacementFailure
import variables
from variables import (CLOUD_LEVEL, GATEWAY_LEVEL, EDGE_LEVEL, EDGE_DEVICES_PER_REPLICA,
                       MODE_REPLICATE_ALL, MODE_REPLICATE_SUFFICIENT, MODE_ROOT_AGGREGATE,
                       PLACEMENT_RULES)

PLACEMENT_MODES = (MODE_REPLICATE_ALL, MODE_REPLICATE_SUFFICIENT, MODE_ROOT_AGGREGATE)


class ModuleMapping:
    """Caller-supplied table of module name -> device names."""

    def __init__(self):
        self.mapping = {}

    def __contains__(self, module_name):
        return module_name in self.mapping

    def add_module_to_device(self, module_name, device_name):
        devices = self.mapping.setdefault(module_name, [])
        if device_name not in devices:
            devices.append(device_name)

    def devices_for(self, module_name):
        return list(self.mapping.get(module_name, []))

    def validate(self, application, topology):
        """Raises ConfigurationError for entries naming unknown modules or devices."""
        for module_name, device_names in self.mapping.items():
            if not application.has_module(module_name):
                raise ConfigurationError(
                    f"Module mapping references unknown module '{module_name}'")
            for device_name in device_names:
                if topology.device_by_name(device_name) is None:
                    raise ConfigurationError(
                        f"Module mapping for '{module_name}' references unknown device '{device_name}'")


class PlacementRule:
    """Sends modules whose name matches pattern to a target level.

    When the target level has no devices, fallback_levels are tried in order;
    each must be strictly closer to the root than the one before it.
    """

    def __init__(self, pattern, target_level, fallback_levels=(), mode=MODE_REPLICATE_ALL):
        if mode not in PLACEMENT_MODES:
            raise ValueError(f"Unknown placement mode: {mode}")
        previous = target_level
        for level in fallback_levels:
            if level >= previous or level < CLOUD_LEVEL:
                raise ValueError(
                    f"Fallback levels of '{pattern}' must move toward the root, got {list(fallback_levels)}")
            previous = level
        self.pattern = pattern
        self.target_level = target_level
        self.fallback_levels = list(fallback_levels)
        self.mode = mode

    @classmethod
    def from_dict(cls, config):
        return cls(config['pattern'], config['target_level'],
                   config.get('fallback_levels', ()), config.get('mode', MODE_REPLICATE_ALL))

    def __repr__(self):
        return (f"PlacementRule({self.pattern!r}, level={self.target_level}, "
                f"fallback={self.fallback_levels}, mode={self.mode})")

    def matches(self, module_name):
        return fnmatch.fnmatchcase(module_name, self.pattern)

    def tier_chain(self):
        return [self.target_level] + self.fallback_levels


def healthcare_rules():
    """Tier rules for the healthcare application (see variables.PLACEMENT_RULES)."""
    return [PlacementRule.from_dict(rule) for rule in PLACEMENT_RULES]


class PlacementPolicy(abc.ABC):
    """
    Abstract base class for module placement strategies.

    A policy decides, for one module at a time, which devices host it and how
    many instances run on each. Modules present in the optional module mapping
    are always placed where the mapping says, before the policy's own logic.
    """
    name = "Placement"

    def __init__(self, module_mapping=None):
        """
        Initialize the policy.

        Args:
            module_mapping: Optional ModuleMapping taking precedence over the policy
        """
        self.module_mapping = module_mapping
        self._warnings = []
        self._stats = {
            'placement_attempts': 0,
            'placement_successes': 0,
            'placement_failures': 0,
            'insufficient_devices': 0,
        }

    def validate(self, application, topology):
        if self.module_mapping is not None:
            self.module_mapping.validate(application, topology)

    def place_module(self, module, application, topology):
        """
        Place a single module.

        Args:
            module: AppModule to place
            application: Application the module belongs to
            topology: Topology of candidate devices

        Returns:
            dict of {device id: instance count}, or a PlacementFailure
        """
        self._stats['placement_attempts'] += 1
        if variables.VERBOSE:
            print(f"\n[PLACEMENT] Module: {module.name}")

        if self.module_mapping is not None and module.name in self.module_mapping:
            result = self._place_mapped(module, topology)
        else:
            result = self.find_devices(module, application, topology)

        if not isinstance(result, PlacementFailure) and not result:
            result = PlacementFailure(module.name, "policy selected no device")
        if isinstance(result, PlacementFailure):
            self._stats['placement_failures'] += 1
        else:
            self._stats['placement_successes'] += 1
        return result

    @abc.abstractmethod
    def find_devices(self, module, application, topology):
        """
        Choose devices for a module that is not explicitly mapped.

        Returns:
            dict of {device id: instance count}, or a PlacementFailure
        """
        pass

    def _place_mapped(self, module, topology):
        """One instance on every mapped device, no resource check."""
        if variables.VERBOSE:
            print("  Strategy: Explicit module mapping")
        fragment = {}
        for device_name in self.module_mapping.devices_for(module.name):
            device = topology.device_by_name(device_name)
            if device is None:
                return PlacementFailure(module.name, f"mapped device '{device_name}' does not exist")
            fragment[device.id] = 1
            if variables.VERBOSE:
                print(f"  Placed on: {device.name} (level {device.level})")
        return fragment

    def _place_edgeward(self, module, topology):
        """First device with enough resources, from the deepest level up to the cloud."""
        if variables.VERBOSE:
            print("  Strategy: Default EDGE-WARD placement")
        max_level = topology.max_level()
        if max_level is None:
            return PlacementFailure(module.name, "topology has no devices")
        for level in range(max_level, CLOUD_LEVEL - 1, -1):
            for device in topology.devices_at_level(level):
                if device.has_capacity(module.mips, module.ram):
                    if variables.VERBOSE:
                        print(f"  Placed on: {device.name} (level {level})")
                    return {device.id: 1}
        return PlacementFailure(
            module.name, f"no device has {module.mips} MIPS and {module.ram} RAM available")

    def warn(self, message):
        print(f"WARNING: {message}")
        self._warnings.append(message)

    def drain_warnings(self):
        warnings, self._warnings = self._warnings, []
        return warnings

    def get_stats(self):
        """
        Get statistics about the policy's performance.

        Returns:
            dict: Performance metrics
        """
        stats = self._stats.copy()
        if stats['placement_attempts'] > 0:
            stats['placement_success_rate'] = stats['placement_successes'] / stats['placement_attempts']
        else:
            stats['placement_success_rate'] = 0
        return stats


class ModulePlacementMapping(PlacementPolicy):
    """Places modules exactly where the module mapping says; nothing else is placed."""
    name = "Module Mapping Placement"

    def __init__(self, module_mapping):
        super().__init__(module_mapping)

    def find_devices(self, module, application, topology):
        return PlacementFailure(module.name, "no entry in module mapping")


class ModulePlacementEdgewards(PlacementPolicy):
    """
    Greedy first-fit placement as close to the edge as possible.

    Levels are scanned from the deepest one toward the cloud and devices in
    topology order; the first device with enough available MIPS and RAM hosts
    the module. No load balancing and no backtracking.
    """
    name = "Edgewards Placement"

    def find_devices(self, module, application, topology):
        return self._place_edgeward(module, topology)


class ModulePlacementTierRules(PlacementPolicy):
    """
    Rule-driven placement onto designated tiers.

    The first rule whose pattern matches the module name decides the target
    tier and mode; modules matching no rule are placed edgeward.
    """
    name = "Tier Rules Placement"

    def __init__(self, rules=None, module_mapping=None):
        super().__init__(module_mapping)
        self.rules = list(rules) if rules is not None else healthcare_rules()

    def rule_for(self, module_name):
        for rule in self.rules:
            if rule.matches(module_name):
                return rule
        return None

    def _resolve_tier(self, module, rule, topology):
        """Target level, or the first fallback level that has devices."""
        for level in rule.tier_chain():
            devices = topology.devices_at_level(level)
            if devices:
                return level, devices
            self.warn(f"No devices at level {level} for {module.name}")
        return None, []

    def find_devices(self, module, application, topology):
        rule = self.rule_for(module.name)
        if rule is None:
            return self._place_edgeward(module, topology)

        if variables.VERBOSE:
            print(f"  Strategy: Place on level {rule.target_level} ({rule.mode})")
        level, devices = self._resolve_tier(module, rule, topology)
        if not devices:
            return PlacementFailure(module.name, f"no devices at levels {rule.tier_chain()}")

        if rule.mode == MODE_REPLICATE_ALL:
            fragment = {device.id: 1 for device in devices}
        elif rule.mode == MODE_REPLICATE_SUFFICIENT:
            fragment = {}
            for device in devices:
                if device.has_capacity(module.mips, module.ram):
                    fragment[device.id] = 1
                else:
                    self._stats['insufficient_devices'] += 1
                    self.warn(f"Insufficient resources on {device.name} for {module.name}")
            if not fragment:
                return PlacementFailure(
                    module.name, f"no device at level {level} has enough resources")
        else:
            device = devices[0]
            fragment = {device.id: self.calculate_required_instances(topology)}

        if variables.VERBOSE:
            for device_id, count in fragment.items():
                print(f"  Placed on: {topology.device_by_id(device_id).name} (instances: {count})")
        return fragment

    def calculate_required_instances(self, topology):
        """One replica per EDGE_DEVICES_PER_REPLICA edge devices or one per gateway, at least one."""
        edge_device_count = len(topology.devices_at_level(EDGE_LEVEL))
        gateway_device_count = len(topology.devices_at_level(GATEWAY_LEVEL))
        return max(1, max(edge_device_count // EDGE_DEVICES_PER_REPLICA, gateway_device_count))
