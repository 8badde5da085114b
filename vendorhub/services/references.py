"""Payment reference codec.

A reference is generated when a collection is initiated and echoed back by
Lenco in the webhook. Its layout is the only correlation between the two,
so it must stay byte-for-byte stable:

    sub_{vendor_id}_{timestamp_ms}
    imp_{store_id}_{product_id}_{timestamp_ms}

parse_reference() returns a typed reference or None. None means "not ours
to act on": the webhook is acknowledged but nothing is mutated.
"""

import time
from dataclasses import dataclass

SEPARATOR = "_"

KIND_SUBSCRIPTION = "sub"
KIND_IMPORT = "imp"


@dataclass(frozen=True)
class SubscriptionReference:
    vendor_id: str
    timestamp: int
    kind: str = KIND_SUBSCRIPTION

    def __str__(self):
        return SEPARATOR.join([self.kind, self.vendor_id, str(self.timestamp)])


@dataclass(frozen=True)
class ImportReference:
    store_id: str
    product_id: str
    timestamp: int
    kind: str = KIND_IMPORT

    def __str__(self):
        return SEPARATOR.join(
            [self.kind, self.store_id, self.product_id, str(self.timestamp)]
        )


def _now_ms():
    return int(time.time() * 1000)


def _check_id(value, label):
    if not value or SEPARATOR in value:
        raise ValueError(f"{label} must be non-empty and contain no '{SEPARATOR}'")


def build_subscription_reference(vendor_id, timestamp=None):
    """Return the reference string for a subscription payment."""
    _check_id(vendor_id, "vendor_id")
    ts = _now_ms() if timestamp is None else int(timestamp)
    return str(SubscriptionReference(vendor_id=vendor_id, timestamp=ts))


def build_import_reference(store_id, product_id, timestamp=None):
    """Return the reference string for a market import payment."""
    _check_id(store_id, "store_id")
    _check_id(product_id, "product_id")
    ts = _now_ms() if timestamp is None else int(timestamp)
    return str(ImportReference(store_id=store_id, product_id=product_id, timestamp=ts))


# kind -> (segment count including kind and timestamp, constructor)
_LAYOUTS = {
    KIND_SUBSCRIPTION: (
        3, lambda parts, ts: SubscriptionReference(vendor_id=parts[1], timestamp=ts)
    ),
    KIND_IMPORT: (
        4, lambda parts, ts: ImportReference(
            store_id=parts[1], product_id=parts[2], timestamp=ts
        )
    ),
}


def parse_reference(value):
    """Decode a reference string into a SubscriptionReference / ImportReference.

    Returns None for anything that is not a well-formed reference of a
    known kind: wrong segment count, empty segments, non-numeric
    timestamp, unknown prefix, or a non-string value.
    """
    if not isinstance(value, str) or not value:
        return None

    parts = value.split(SEPARATOR)
    layout = _LAYOUTS.get(parts[0])
    if layout is None:
        return None

    expected_segments, build = layout
    if len(parts) != expected_segments or not all(parts):
        return None

    if not (parts[-1].isascii() and parts[-1].isdigit()):
        return None

    return build(parts, int(parts[-1]))
