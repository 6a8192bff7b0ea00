from threading import Lock
import variables
from variables import OVERBOOKING_RATIO_BW


class BwProvisionerOverbooking:
    """
    Best-effort bandwidth ledger for a single device link.

    The allocatable pool is the nominal bandwidth multiplied by the overbooking
    ratio. A request is granted if it fits in what is still available,
    otherwise it fails. Capacity exhaustion is reported through the return
    value, never raised.
    """

    def __init__(self, bw, overbooking_ratio=OVERBOOKING_RATIO_BW):
        """
        Args:
            bw: Nominal link bandwidth (bandwidth units)
            overbooking_ratio: Multiplier applied to bw to get the allocatable pool
        """
        if bw < 0:
            raise ValueError(f"Bandwidth capacity must be non-negative, got {bw}")
        if overbooking_ratio < 0:
            raise ValueError(f"Overbooking ratio must be non-negative, got {overbooking_ratio}")
        self.bw = bw
        self.overbooking_ratio = overbooking_ratio
        self.allocated_pool = self.get_overbooked_bw()
        self.available = self.allocated_pool
        self._bw_table = {}  # consumer id -> reserved bandwidth
        self._lock = Lock()

    def __str__(self):
        return (f"BwProvisioner(Available:{self.available}/{self.allocated_pool}, "
                f"Consumers:{len(self._bw_table)})")

    def get_overbooked_bw(self):
        return int(self.bw * self.overbooking_ratio)

    @property
    def used(self):
        return sum(self._bw_table.values())

    @property
    def ledger(self):
        return dict(self._bw_table)

    def allocate(self, consumer_id, amount):
        """Reserves amount for consumer_id.

        Any previous reservation of the consumer is released first and is not
        restored if the new request does not fit.

        Returns:
            bool: True if the reservation was recorded
        """
        if amount < 0:
            raise ValueError(f"Bandwidth amount must be non-negative, got {amount}")
        with self._lock:
            self._deallocate(consumer_id)
            if self.available >= amount:
                self.available -= amount
                self._bw_table[consumer_id] = amount
                return True
        if variables.VERBOSE:
            print(f"Bandwidth allocation of {amount} for {consumer_id} refused by {self}")
        return False

    def deallocate(self, consumer_id):
        """Releases the reservation of consumer_id, if any."""
        with self._lock:
            self._deallocate(consumer_id)

    def _deallocate(self, consumer_id):
        if consumer_id in self._bw_table:
            amount_freed = self._bw_table.pop(consumer_id)
            self.available += amount_freed

    def deallocate_all(self):
        """Clears the ledger and resets the pool from the current capacity."""
        with self._lock:
            self._bw_table.clear()
            self.allocated_pool = self.get_overbooked_bw()
            self.available = self.allocated_pool

    def get_allocated(self, consumer_id):
        return self._bw_table.get(consumer_id, 0)

    def is_suitable(self, consumer_id, amount):
        """Checks whether allocate(consumer_id, amount) would succeed.

        The consumer's own reservation counts as available since allocate()
        releases it first. The ledger is not touched.
        """
        with self._lock:
            return amount <= self.available + self._bw_table.get(consumer_id, 0)
