import time
import argparse
import simpy

from variables import *
from Application import Application
from Topology import Topology
from Placement import ModuleMapping, ModulePlacementMapping, ModulePlacementEdgewards, ModulePlacementTierRules
from PlacementEngine import PlacementEngine
from Sensor import Sensor, Actuator
from Distribution import DeterministicDistribution
from System import System


def track_progress(env, sim_time, step_percent=10):
    """Prints simulated progress and wall-clock time every step_percent of sim_time."""
    started = time.time()
    step = sim_time * step_percent / 100
    percent = 0
    while percent < 100:
        yield env.timeout(step)
        percent += step_percent
        print(f"{env.now:.2f} - Progress {percent}% ({time.time() - started:.2f}s wall clock)")


def create_application(config):
    """Builds an Application from a dict shaped like variables.HEALTHCARE_APP."""
    application = Application(config["app_id"])
    for name, (mips, ram) in config["modules"].items():
        application.add_app_module(name, mips=mips, ram=ram)
    for edge in config["edges"]:
        application.add_app_edge(*edge)
    for mapping in config["tuple_mappings"]:
        application.add_tuple_mapping(*mapping)
    for loop in config["loops"]:
        application.add_loop(loop)
    return application


def create_sensors_and_actuators(topology):
    """One heart-rate sensor and one alert actuator per edge device."""
    sensors = []
    actuators = []
    for device in topology.devices_at_level(EDGE_LEVEL):
        sensors.append(Sensor(f"hr-sensor-{device.name}", SENSOR_TUPLE_TYPE, device.id,
                              DeterministicDistribution(SENSOR_EMISSION_INTERVAL), SENSOR_LATENCY))
        actuators.append(Actuator(f"alert-{device.name}", ACTUATOR_TYPE, device.id, ACTUATOR_LATENCY))
    return sensors, actuators


def create_policy(policy_name, topology):
    if policy_name == "tiers":
        return ModulePlacementTierRules()
    elif policy_name == "edgewards":
        return ModulePlacementEdgewards()
    elif policy_name == "mapping":
        module_mapping = ModuleMapping()
        for device in topology.devices_at_level(EDGE_LEVEL):
            module_mapping.add_module_to_device("sensor_data_processing", device.name)
        for device in topology.devices_at_level(GATEWAY_LEVEL):
            module_mapping.add_module_to_device("feature_extraction", device.name)
        root = topology.root()
        if root is not None:
            module_mapping.add_module_to_device("deep_analytics", root.name)
        else:
            print("WARNING: Topology has no level-0 device, deep_analytics stays unmapped")
        return ModulePlacementMapping(module_mapping)
    else:
        raise ValueError(f"Unknown placement policy: {policy_name}")


def print_statistics(system):
    print("\n--- Overall Simulation Statistics ---")
    for key, value in system.stats.items():
        print(f"{key.replace('_', ' ').capitalize():<30}: {value}")

    if system.stats['tuples_emitted'] > 0:
        block_perc = system.stats['blocked_no_bandwidth'] / system.stats['tuples_emitted'] * 100
        print(f"{'Bandwidth blocking percentage':<30}: {block_perc:.2f}%")

    print("\n--- Module Statistics ---")
    for module_name, stats in system.module_stats.items():
        print(f"  {module_name:<28}: {stats['processed']} tuples processed")

    print("\n--- Loop Latencies (ms) ---")
    loop_df = system.loop_latency_frame()
    if loop_df.empty:
        print("No loop completed.")
    else:
        print(loop_df.to_string(index=False))

    print("\n--- Link Bandwidth Ledgers ---")
    for device in system.topology.devices:
        print(f"  {device.name:<18}: {device.bw_provisioner}")


def main():
    parser = argparse.ArgumentParser(description='Place the healthcare application on a fog topology')
    parser.add_argument('--topology', type=str, default=TOPOLOGY_FILE,
                        help='Path to the JSON topology file')
    parser.add_argument('--policy', choices=['tiers', 'edgewards', 'mapping'], default='tiers',
                        help='Placement policy to use')
    parser.add_argument('--sim-time', type=float, default=SIM_TIME,
                        help='Simulation time units; 0 only runs the placement')
    parser.add_argument('--plot', action='store_true',
                        help='Show the placement on the device tree')
    args = parser.parse_args()

    print("--- Placement Start ---")
    topology = Topology.from_json(args.topology)
    application = create_application(HEALTHCARE_APP)
    policy = create_policy(args.policy, topology)

    assignment = PlacementEngine().place(application, topology, policy)

    print(f"\n--- Placement ({policy.name}) ---")
    print(assignment.to_dataframe(topology).to_string(index=False))
    if assignment.failures:
        print("\nUnplaced modules:")
        for failure in assignment.failures:
            print(f"  {failure.module_name}: {failure.reason}")
    for key, value in policy.get_stats().items():
        print(f"{key.replace('_', ' ').capitalize():<30}: {value}")

    if args.plot:
        import matplotlib.pyplot as plt
        from visual_topo import visualize_placement, show_device_info
        show_device_info(topology)
        visualize_placement(topology, assignment)
        plt.show()

    if args.sim_time <= 0:
        return

    print("\n--- Simulation Start ---")
    print(f"Simulation time is: {args.sim_time} time units.")
    env = simpy.Environment()
    sensors, actuators = create_sensors_and_actuators(topology)
    system = System(env, topology, application, assignment, sensors, actuators, seed=RANDOM_SEED)
    system.deploy()
    system.start()
    env.process(track_progress(env, args.sim_time))
    env.run(until=args.sim_time)

    print("-" * 20)
    print(f"--- Simulation End at time {env.now:.2f} ---")
    print_statistics(system)


if __name__ == "__main__":
    main()
