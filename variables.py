# --- Configuration ---
RANDOM_SEED = 42
SIM_TIME = 1000  # Simulation time units (ms)
VERBOSE = False  # Set to True to enable detailed logging

# Device hierarchy levels (0 = cloud, increasing toward the edge)
CLOUD_LEVEL = 0
PROXY_LEVEL = 1
GATEWAY_LEVEL = 2
EDGE_LEVEL = 3
ROOT_PARENT_ID = -1  # parent id of the root device

# Bandwidth provisioning
# NOTE: 1.0 grants no headroom beyond nominal bandwidth (not 20% overbooking)
OVERBOOKING_RATIO_BW = 1.0
DEFAULT_DEVICE_BW = 10000  # Nominal link bandwidth of a device's host

# Default module requirements
DEFAULT_MODULE_MIPS = 1000
DEFAULT_MODULE_RAM = 10

# Replica heuristic for aggregation modules placed on the cloud:
# one replica per EDGE_DEVICES_PER_REPLICA edge devices, or one per gateway
EDGE_DEVICES_PER_REPLICA = 5

# Placement modes for tier rules
MODE_REPLICATE_ALL = "replicate_all"                 # every device at the tier
MODE_REPLICATE_SUFFICIENT = "replicate_sufficient"   # every device passing the check
MODE_ROOT_AGGREGATE = "root_aggregate"               # single root device + replica count

# Tier rules for the healthcare application.
# Each rule: name pattern -> target level, fallback levels (toward the root), mode
PLACEMENT_RULES = [
    {
        "pattern": "sensor_data_processing",  # Lightweight, close to sensors
        "target_level": EDGE_LEVEL,
        "fallback_levels": [GATEWAY_LEVEL],
        "mode": MODE_REPLICATE_ALL,
    },
    {
        "pattern": "feature_extraction",  # Aggregates several edge streams
        "target_level": GATEWAY_LEVEL,
        "fallback_levels": [PROXY_LEVEL],
        "mode": MODE_REPLICATE_SUFFICIENT,
    },
    {
        "pattern": "deep_analytics",  # Heavy ML inference
        "target_level": CLOUD_LEVEL,
        "fallback_levels": [],
        "mode": MODE_ROOT_AGGREGATE,
    },
]

# Topology configuration
TOPOLOGY_FILE = "./topology/healthcare.json"
NUM_PATIENTS = 10  # Edge devices (one wearable per patient) in the healthcare topology

# Healthcare application definition used by main.py
HEALTHCARE_APP = {
    "app_id": "healthcare",
    "modules": {
        # name: (mips, ram)
        "sensor_data_processing": (100, 10),  # Lightweight
        "feature_extraction": (500, 10),      # Medium
        "deep_analytics": (2000, 10),         # Heavy
    },
    "edges": [
        # source, destination, tuple cpu length, tuple nw length, tuple type, direction, edge type
        ("HEART_RATE", "sensor_data_processing", 1000, 500, "RAW_DATA", "UP", "SENSOR"),
        ("sensor_data_processing", "feature_extraction", 500, 500, "PROCESSED_DATA", "UP", "MODULE"),
        ("feature_extraction", "deep_analytics", 100, 1000, "FEATURES", "UP", "MODULE"),
        ("deep_analytics", "ALERT", 28, 100, "ALERT_SIGNAL", "DOWN", "ACTUATOR"),
    ],
    "tuple_mappings": [
        # module, input tuple type, output tuple type, fraction
        ("sensor_data_processing", "RAW_DATA", "PROCESSED_DATA", 1.0),
        ("feature_extraction", "PROCESSED_DATA", "FEATURES", 0.5),
        ("deep_analytics", "FEATURES", "ALERT_SIGNAL", 0.1),
    ],
    "loops": [
        ["sensor_data_processing", "feature_extraction", "deep_analytics"],
    ],
}

# Sensors and actuators attached to every edge device in the healthcare topology
SENSOR_TUPLE_TYPE = "HEART_RATE"
SENSOR_EMISSION_INTERVAL = 5.0  # Deterministic emission every 5 ms
SENSOR_LATENCY = 1.0
ACTUATOR_TYPE = "ALERT"
ACTUATOR_LATENCY = 1.0
