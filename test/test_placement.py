import pytest

from Application import AppModule
from Placement import (ModuleMapping, ModulePlacementMapping, ModulePlacementEdgewards,
                       ModulePlacementTierRules, PlacementRule, healthcare_rules)
from PlacementEngine import PlacementFailure
from variables import (CLOUD_LEVEL, PROXY_LEVEL, GATEWAY_LEVEL, EDGE_LEVEL,
                       MODE_REPLICATE_ALL, MODE_REPLICATE_SUFFICIENT, MODE_ROOT_AGGREGATE)


def three_tier(make_topology, edge_mips=500, gateway_mips=2800):
    return make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("gateway", 2, "cloud", gateway_mips, 4000),
        ("edge-0", 3, "gateway", edge_mips, 1000),
        ("edge-1", 3, "gateway", edge_mips * 2, 1000),
    ])


# --- Edgewards ---

def test_edgeward_prefers_first_fitting_edge_device(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementEdgewards()
    fragment = policy.place_module(AppModule("light", 400, 100), None, topology)
    assert fragment == {topology.device_by_name("edge-0").id: 1}


def test_edgeward_skips_insufficient_devices(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementEdgewards()

    fragment = policy.place_module(AppModule("medium", 800, 100), None, topology)
    assert fragment == {topology.device_by_name("edge-1").id: 1}

    # RAM alone can disqualify every edge device
    fragment = policy.place_module(AppModule("ram-heavy", 100, 2000), None, topology)
    assert fragment == {topology.device_by_name("gateway").id: 1}

    fragment = policy.place_module(AppModule("heavy", 20000, 100), None, topology)
    assert fragment == {topology.device_by_name("cloud").id: 1}


def test_edgeward_never_violates_capacity(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementEdgewards()
    for mips in (1, 499, 500, 501, 1000, 1001, 2800, 2801, 44800):
        for ram in (10, 1000, 1001, 4000, 4001, 40000):
            module = AppModule(f"m-{mips}-{ram}", mips, ram)
            result = policy.place_module(module, None, topology)
            if isinstance(result, PlacementFailure):
                continue
            for device_id in result:
                device = topology.device_by_id(device_id)
                assert device.available_mips >= mips
                assert device.available_ram >= ram


def test_edgeward_failure_when_nothing_fits(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementEdgewards()
    result = policy.place_module(AppModule("huge", 10 ** 6, 10), None, topology)
    assert isinstance(result, PlacementFailure)
    assert result.module_name == "huge"
    assert policy.get_stats()['placement_failures'] == 1


# --- Explicit mapping ---

def test_mapping_places_one_instance_per_mapped_device(make_topology):
    topology = three_tier(make_topology)
    mapping = ModuleMapping()
    mapping.add_module_to_device("proc", "edge-0")
    mapping.add_module_to_device("proc", "edge-1")
    mapping.add_module_to_device("proc", "edge-1")
    policy = ModulePlacementMapping(mapping)

    fragment = policy.place_module(AppModule("proc", 10, 10), None, topology)
    assert fragment == {topology.device_by_name("edge-0").id: 1, topology.device_by_name("edge-1").id: 1}

    result = policy.place_module(AppModule("unmapped", 10, 10), None, topology)
    assert isinstance(result, PlacementFailure)


def test_mapping_ignores_resources_and_wins_over_policy(make_topology):
    topology = three_tier(make_topology)
    mapping = ModuleMapping()
    # edge-0 cannot actually host this module
    mapping.add_module_to_device("heavy", "edge-0")
    mapping.add_module_to_device("deep_analytics", "gateway")

    edgewards = ModulePlacementEdgewards(module_mapping=mapping)
    assert edgewards.place_module(AppModule("heavy", 5000, 10), None, topology) == {
        topology.device_by_name("edge-0").id: 1}

    tiers = ModulePlacementTierRules(module_mapping=mapping)
    assert tiers.place_module(AppModule("deep_analytics", 10, 10), None, topology) == {
        topology.device_by_name("gateway").id: 1}


def test_mapping_to_missing_device_is_a_failure(make_topology):
    topology = three_tier(make_topology)
    mapping = ModuleMapping()
    mapping.add_module_to_device("proc", "edge-9")
    result = ModulePlacementMapping(mapping).place_module(AppModule("proc", 1, 1), None, topology)
    assert isinstance(result, PlacementFailure)
    assert "edge-9" in result.reason


# --- Tier rules ---

def test_healthcare_rules_on_healthcare_topology(healthcare_topology, healthcare_app):
    policy = ModulePlacementTierRules()
    edges = healthcare_topology.devices_at_level(EDGE_LEVEL)
    gateway = healthcare_topology.devices_at_level(GATEWAY_LEVEL)[0]
    cloud = healthcare_topology.root()

    sdp = policy.place_module(healthcare_app.get_module("sensor_data_processing"), healthcare_app, healthcare_topology)
    assert sdp == {device.id: 1 for device in edges}

    fe = policy.place_module(healthcare_app.get_module("feature_extraction"), healthcare_app, healthcare_topology)
    assert fe == {gateway.id: 1}

    da = policy.place_module(healthcare_app.get_module("deep_analytics"), healthcare_app, healthcare_topology)
    # max(1, max(10 // 5, 1))
    assert da == {cloud.id: 2}


def test_replica_count_formula(make_topology):
    nodes = [("cloud", 0, None, 44800, 40000)]
    nodes += [(f"gw-{i}", 2, "cloud", 2800, 4000) for i in range(3)]
    nodes += [(f"edge-{i}", 3, "gw-0", 500, 1000) for i in range(22)]
    topology = make_topology(nodes)
    policy = ModulePlacementTierRules()
    assert policy.calculate_required_instances(topology) == 4  # 22 // 5 beats 3 gateways

    lone_cloud = make_topology([("cloud", 0, None, 44800, 40000)])
    assert policy.calculate_required_instances(lone_cloud) == 1


def test_gateway_module_falls_back_to_proxy(make_topology):
    topology = make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("proxy", 1, "cloud", 2800, 4000),
        ("edge-0", 3, "proxy", 500, 1000),
    ])
    policy = ModulePlacementTierRules()
    fragment = policy.place_module(AppModule("feature_extraction", 500, 10), None, topology)
    assert fragment == {topology.device_by_name("proxy").id: 1}
    assert any("level 2" in warning for warning in policy.drain_warnings())


def test_gateway_module_fails_without_gateway_or_proxy(make_topology):
    topology = make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("edge-0", 3, "cloud", 500, 1000),
    ])
    policy = ModulePlacementTierRules()
    result = policy.place_module(AppModule("feature_extraction", 500, 10), None, topology)
    assert isinstance(result, PlacementFailure)
    assert result.module_name == "feature_extraction"


def test_edge_module_falls_back_to_gateway(make_topology):
    topology = make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("gw-0", 2, "cloud", 2800, 4000),
        ("gw-1", 2, "cloud", 2800, 4000),
    ])
    policy = ModulePlacementTierRules()
    fragment = policy.place_module(AppModule("sensor_data_processing", 100, 10), None, topology)
    assert fragment == {1: 1, 2: 1}


def test_replicate_sufficient_skips_small_devices(make_topology):
    topology = make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("gw-small", 2, "cloud", 100, 4000),
        ("gw-big", 2, "cloud", 2800, 4000),
    ])
    policy = ModulePlacementTierRules()
    fragment = policy.place_module(AppModule("feature_extraction", 500, 10), None, topology)
    assert fragment == {topology.device_by_name("gw-big").id: 1}
    assert policy.get_stats()['insufficient_devices'] == 1
    assert any("gw-small" in warning for warning in policy.drain_warnings())


def test_replicate_sufficient_fails_when_no_device_fits(make_topology):
    topology = make_topology([
        ("cloud", 0, None, 44800, 40000),
        ("gw-small", 2, "cloud", 100, 4000),
    ])
    policy = ModulePlacementTierRules()
    result = policy.place_module(AppModule("feature_extraction", 500, 10), None, topology)
    assert isinstance(result, PlacementFailure)


def test_replicate_all_skips_resource_check(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementTierRules()
    fragment = policy.place_module(AppModule("sensor_data_processing", 100000, 10), None, topology)
    assert fragment == {2: 1, 3: 1}


def test_root_aggregate_fails_without_root(make_topology):
    topology = make_topology([("gw", 2, None, 2800, 4000), ("edge", 3, "gw", 500, 1000)])
    policy = ModulePlacementTierRules()
    result = policy.place_module(AppModule("deep_analytics", 10, 10), None, topology)
    assert isinstance(result, PlacementFailure)


def test_unmatched_module_is_placed_edgeward(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementTierRules()
    assert policy.place_module(AppModule("logger", 900, 10), None, topology) == {
        topology.device_by_name("edge-1").id: 1}


def test_rule_patterns_and_order(make_topology):
    topology = three_tier(make_topology)
    rules = [
        PlacementRule("*_exact", CLOUD_LEVEL, mode=MODE_ROOT_AGGREGATE),
        PlacementRule("video_*", GATEWAY_LEVEL, [PROXY_LEVEL, CLOUD_LEVEL], MODE_REPLICATE_SUFFICIENT),
        PlacementRule("video_decoder", EDGE_LEVEL, mode=MODE_REPLICATE_ALL),
    ]
    policy = ModulePlacementTierRules(rules)
    assert policy.rule_for("video_decoder") is rules[1]
    assert policy.rule_for("count_exact") is rules[0]
    assert policy.rule_for("other") is None
    assert policy.place_module(AppModule("video_decoder", 10, 10), None, topology) == {1: 1}


def test_rule_validation():
    with pytest.raises(ValueError):
        PlacementRule("x", GATEWAY_LEVEL, [EDGE_LEVEL])
    with pytest.raises(ValueError):
        PlacementRule("x", EDGE_LEVEL, [PROXY_LEVEL, GATEWAY_LEVEL])
    with pytest.raises(ValueError):
        PlacementRule("x", EDGE_LEVEL, mode="round_robin")
    assert [rule.pattern for rule in healthcare_rules()] == [
        "sensor_data_processing", "feature_extraction", "deep_analytics"]


def test_stats_success_rate(make_topology):
    topology = three_tier(make_topology)
    policy = ModulePlacementEdgewards()
    policy.place_module(AppModule("a", 10, 10), None, topology)
    policy.place_module(AppModule("b", 10 ** 7, 10), None, topology)
    stats = policy.get_stats()
    assert stats['placement_attempts'] == 2
    assert stats['placement_successes'] == 1
    assert stats['placement_success_rate'] == 0.5
