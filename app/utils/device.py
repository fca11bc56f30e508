from fastapi import Request

UNKNOWN_DEVICE = "unknown"


def device_label(request: Request) -> str:
    """"<brand> <model>" from the client's device headers, else "unknown".

    Audit data only; never used for authorization.
    """
    brand = (request.headers.get("X-Device-Brand") or "").strip()
    model = (request.headers.get("X-Device-Model") or "").strip()
    if brand and model:
        return f"{brand} {model}"[:255]
    return UNKNOWN_DEVICE
