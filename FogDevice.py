import variables
from variables import ROOT_PARENT_ID, DEFAULT_DEVICE_BW, OVERBOOKING_RATIO_BW
from BwProvisioner import BwProvisionerOverbooking


class FogDevice:
    """Represents a physical fog device with compute, memory and link capacities."""
    def __init__(self, device_id, name, level, mips, ram, parent_id=ROOT_PARENT_ID,
                 uplink_latency=0.0, uplink_bandwidth=10000, downlink_bandwidth=10000,
                 bw=DEFAULT_DEVICE_BW, overbooking_ratio=OVERBOOKING_RATIO_BW):
        self.id = device_id
        self.name = name
        self.level = level  # 0 = cloud, increasing toward the edge
        self.parent_id = parent_id
        self.uplink_latency = uplink_latency
        self.uplink_bandwidth = uplink_bandwidth
        self.downlink_bandwidth = downlink_bandwidth
        # Maximum capacities
        self.mips = mips
        self.ram = ram
        # Currently free resources, consumed when module instances are created
        self.available_mips = mips
        self.available_ram = ram
        self.bw = bw
        self.overbooking_ratio = overbooking_ratio
        self.bw_provisioner = BwProvisionerOverbooking(bw, overbooking_ratio)
        self.module_instances = {}  # module name -> number of running instances

    def __str__(self):
        return (f"{self.name}[{self.id}]("
                f"Level:{self.level}, "
                f"MIPS:{self.available_mips:.1f}/{self.mips:.1f}, "
                f"RAM:{self.available_ram:.1f}/{self.ram:.1f})")

    def __repr__(self):
        return f"FogDevice({self.id}, {self.name!r}, level={self.level})"

    def is_root(self):
        return self.parent_id == ROOT_PARENT_ID

    def has_capacity(self, mips_demand, ram_demand):
        """Checks if the device currently has enough free resources."""
        return self.available_mips >= mips_demand and self.available_ram >= ram_demand

    def allocate_module(self, module, count=1):
        """Admits count instances of module if the device can host all of them.
        Returns True if allocation was successful, False otherwise."""
        mips_demand = module.mips * count
        ram_demand = module.ram * count
        if not self.has_capacity(mips_demand, ram_demand):
            if variables.VERBOSE:
                print(f"Module {module.name} x{count} rejected by {self}")
            return False
        self.available_mips -= mips_demand
        self.available_ram -= ram_demand
        self.module_instances[module.name] = self.module_instances.get(module.name, 0) + count
        if variables.VERBOSE:
            print(f"Module {module.name} x{count} created on {self}")
        return True

    def deallocate_module(self, module):
        """Releases every instance of module hosted on this device."""
        count = self.module_instances.pop(module.name, 0)
        self.available_mips += module.mips * count
        self.available_ram += module.ram * count
        return count

    def get_utilization(self):
        """Returns [cpu, ram] utilization of the device."""
        used_mips = self.mips - self.available_mips
        used_ram = self.ram - self.available_ram
        return [used_mips / self.mips if self.mips else 0.0,
                used_ram / self.ram if self.ram else 0.0]
