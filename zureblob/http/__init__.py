"""HTTP transport boundary."""

from zureblob.http.transport import HttpResponse, HttpxTransport, Transport

__all__ = ["HttpResponse", "HttpxTransport", "Transport"]
