def next_vehicle_id(current_max: int | None) -> int:
    """
    One past the highest id in the store, or 1 for an empty store.

    Callers must evaluate this inside the same critical section or transaction
    as the insert that consumes the id, otherwise two concurrent creates can
    read the same maximum.
    """
    if current_max is None:
        return 1
    return int(current_max) + 1
