"""Room availability lookups against the hotel backend.

The backend is not fully trusted: malformed entries in its listing are
dropped and logged instead of failing the whole query. Results are built
fresh for every call and never cached.
"""
import logging
from typing import Optional

from backend_client import BackendClient
from errors import AvailabilityServiceError
from models import (
    DateRange,
    RoomType,
    RoomTypeAvailability,
    RoomTypeAvailabilityView,
    StockLevel,
)

logger = logging.getLogger(__name__)

# Below this share of total rooms the admin board flags a room type as limited.
LIMITED_STOCK_RATIO = 0.5


def build_availability_params(date_range: DateRange, room_type: Optional[RoomType] = None) -> dict:
    """Query parameters for the availability endpoint."""
    params = {
        "check_in": date_range.check_in.isoformat(),
        "check_out": date_range.check_out.isoformat(),
    }
    if room_type is not None:
        params["type"] = RoomType(room_type).value
    return params


def _as_int(entry: dict, key: str) -> int:
    value = entry.get(key)
    if value is None:
        raise ValueError(f"missing {key}")
    if isinstance(value, bool):
        raise ValueError(f"{key} is not a number")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"{key} is not a whole number: {value!r}")


def _parse_entry(entry) -> RoomTypeAvailability:
    if not isinstance(entry, dict):
        raise ValueError("entry is not an object")

    raw_type = entry.get("room_type") or entry.get("type")
    if not isinstance(raw_type, str):
        raise ValueError("missing room_type")

    # Older backend builds only send price_per_night.
    price_key = "current_price" if entry.get("current_price") is not None else "price_per_night"
    current_price = _as_int(entry, price_key)
    available_rooms = _as_int(entry, "available_rooms")
    total_rooms = _as_int(entry, "total_rooms")

    base_price = _as_int(entry, "base_price") if entry.get("base_price") is not None else current_price
    if entry.get("discount_percent") is not None:
        discount_percent = _as_int(entry, "discount_percent")
    elif base_price > 0:
        discount_percent = round((base_price - current_price) * 100 / base_price)
    else:
        discount_percent = 0

    return RoomTypeAvailability(
        room_type=raw_type.strip().lower(),
        base_price=base_price,
        current_price=current_price,
        discount_percent=discount_percent,
        available_rooms=available_rooms,
        total_rooms=total_rooms,
    )


def normalize_availability(body) -> list[RoomTypeAvailability]:
    """Turn an availability response body into validated entries.

    Accepts ``{"data": [...]}`` or a bare list; ``"data": null`` is an empty
    listing. Entries that fail to parse are logged and skipped; the service's
    order is kept. A body without a listing at all is a service error.
    """
    if isinstance(body, dict):
        if "data" not in body:
            logger.warning(f"Availability response has no data field: keys={sorted(body)}")
            raise AvailabilityServiceError("Availability service returned a malformed response")
        entries = body["data"]
        if entries is None:
            return []
    else:
        entries = body
    if not isinstance(entries, list):
        logger.warning(f"Availability listing is not a list: {type(entries).__name__}")
        raise AvailabilityServiceError("Availability service returned a malformed response")

    snapshot = []
    for index, entry in enumerate(entries):
        try:
            snapshot.append(_parse_entry(entry))
        except ValueError as e:
            logger.warning(f"Dropping availability entry #{index}: {e}")
    if len(snapshot) < len(entries):
        logger.info(f"Kept {len(snapshot)} of {len(entries)} availability entries")
    return snapshot


async def query_availability(
    client: BackendClient,
    date_range: DateRange,
    room_type: Optional[RoomType] = None,
) -> list[RoomTypeAvailability]:
    """Query the public availability endpoint for a validated date range."""
    params = build_availability_params(date_range, room_type)
    body = await client.get_availability(params)
    snapshot = normalize_availability(body)
    logger.info(
        f"Availability {params['check_in']}..{params['check_out']} "
        f"type={params.get('type', 'all')}: {len(snapshot)} room types"
    )
    return snapshot


async def query_admin_availability(
    client: BackendClient,
    date_range: DateRange,
    room_type: Optional[RoomType] = None,
) -> list[RoomTypeAvailability]:
    """Query the authenticated availability endpoint used by the admin board."""
    params = build_availability_params(date_range, room_type)
    body = await client.get_admin_availability(params)
    return normalize_availability(body)


def find_room_type(
    snapshot: list[RoomTypeAvailability], room_type: RoomType
) -> Optional[RoomTypeAvailability]:
    room_type = RoomType(room_type)
    for entry in snapshot:
        if entry.room_type == room_type:
            return entry
    return None


def stock_level(entry: RoomTypeAvailability) -> StockLevel:
    """Classify remaining stock the way the admin board colours it."""
    if entry.available_rooms == 0:
        return StockLevel.FULL
    if entry.available_rooms < entry.total_rooms * LIMITED_STOCK_RATIO:
        return StockLevel.LIMITED
    return StockLevel.AVAILABLE


def describe_availability(entry: RoomTypeAvailability, nights: int) -> RoomTypeAvailabilityView:
    return RoomTypeAvailabilityView(
        **entry.model_dump(),
        savings=entry.savings,
        stock_level=stock_level(entry),
        stay_price=entry.current_price * nights,
    )
