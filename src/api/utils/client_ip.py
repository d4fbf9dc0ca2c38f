from starlette.requests import Request


def get_client_ip(request: Request) -> str:
    """
    Client address of a request.

    Priority: X-Forwarded-For (first entry of the proxy chain), X-Real-IP,
    then the socket peer address.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"
