import logging
from typing import List

# A fingerprint is an unsigned 64-bit int. Zero doubles as the empty-slot marker.
Fingerprint = int

# --- FNV-1a (64-bit) parameters ---
FNV_OFFSET_BASIS = 0xcbf29ce484222325
FNV_PRIME = 0x100000001b3
FINGERPRINT_BYTES = 8 # Only the first 8 bytes of a line take part in the hash
MASK_64 = (1 << 64) - 1

EMPTY_SLOT = 0
DEFAULT_CAPACITY = 1024
MAX_CAPACITY = 1 << 28 # Largest accepted slot-count hint
GROW_LOAD_FACTOR = 0.75

SATURATION_OVERWRITE = "overwrite"
SATURATION_GROW = "grow"
SATURATION_POLICIES = (SATURATION_OVERWRITE, SATURATION_GROW)


def fingerprint(line: bytes) -> Fingerprint:
    """
    FNV-1a over at most the first 8 bytes of a line.

    Lines sharing their first 8 bytes get the same fingerprint, so they are
    treated as duplicates of each other even when the rest differs.
    """
    h = FNV_OFFSET_BASIS
    for byte in line[:FINGERPRINT_BYTES]:
        h ^= byte
        h = (h * FNV_PRIME) & MASK_64
    return h


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


class LineHashSet:
    """
    Fixed-size open-addressing set of fingerprints with linear probing.

    Built once per dedup pass. There is no deletion and no iteration.

    Saturation policies:
      - "overwrite": the table never grows. When a full wraparound probe finds
        neither an empty slot nor a match, the home slot is overwritten and the
        insert still reports a new entry. The evicted fingerprint can no longer
        be detected as a duplicate, so oversized inputs lose dedup quality
        instead of failing.
      - "grow": the table doubles and rehashes once the load factor passes
        GROW_LOAD_FACTOR, so no entry is ever evicted.

    In both policies a fingerprint equal to EMPTY_SLOT is indistinguishable
    from a free slot and is always reported as new.
    """

    def __init__(self, capacity_hint: int = DEFAULT_CAPACITY, saturation: str = SATURATION_OVERWRITE):
        if capacity_hint < 0:
            raise ValueError(f"capacity_hint must be >= 0, got {capacity_hint}")
        if capacity_hint > MAX_CAPACITY:
            raise ValueError(f"capacity_hint must be <= {MAX_CAPACITY}, got {capacity_hint}")
        if saturation not in SATURATION_POLICIES:
            raise ValueError(f"Unknown saturation policy '{saturation}', expected one of {SATURATION_POLICIES}")
        self.saturation = saturation
        self._slots: List[Fingerprint] = [EMPTY_SLOT] * next_power_of_two(capacity_hint)
        self._mask = len(self._slots) - 1
        self.occupied = 0
        self.overwrites = 0

    @property
    def table_size(self) -> int:
        return len(self._slots)

    @property
    def saturated(self) -> bool:
        """True once the overwrite fallback has evicted at least one entry."""
        return self.overwrites > 0

    def insert(self, fp: Fingerprint) -> bool:
        """Record fp. Returns True if it was not present before, False for a duplicate."""
        if self.saturation == SATURATION_GROW and (self.occupied + 1) > self.table_size * GROW_LOAD_FACTOR:
            self._grow()

        idx = fp & self._mask
        for _ in range(self.table_size):
            current = self._slots[idx]
            if current == EMPTY_SLOT:
                self._slots[idx] = fp
                if fp != EMPTY_SLOT:
                    self.occupied += 1
                return True
            if current == fp:
                return False
            idx = (idx + 1) & self._mask

        # Full wraparound without a free slot or a match: idx is back at the home slot.
        if self.overwrites == 0:
            logging.warning(f"Hash set saturated ({self.table_size} slots); overwriting entries, later duplicates may be missed.")
        self.overwrites += 1
        self._slots[idx] = fp
        return True

    def _grow(self):
        old = self._slots
        self._slots = [EMPTY_SLOT] * (len(old) * 2)
        self._mask = len(self._slots) - 1
        for fp in old:
            if fp == EMPTY_SLOT:
                continue
            idx = fp & self._mask
            while self._slots[idx] != EMPTY_SLOT:
                idx = (idx + 1) & self._mask
            self._slots[idx] = fp
        logging.debug(f"Hash set grown from {len(old)} to {len(self._slots)} slots ({self.occupied} entries)")
