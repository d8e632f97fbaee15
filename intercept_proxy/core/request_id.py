import uuid

# Response header carrying the request identifier back to the client
REQUEST_ID_HEADER = "x-proxy-request-id"


def generate_request_id() -> uuid.UUID:
    """Returns a fresh random identifier for one proxied request."""
    return uuid.uuid4()
