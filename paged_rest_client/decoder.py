"""Map an HTTP status and body to a typed envelope or a typed error."""

import json
import logging

from pydantic import ValidationError

from .envelope import Envelope
from .errors import DecodingFailedError, InvalidResponseShapeError, error_for_status
from .providers import Provider, lookup

logger = logging.getLogger(__name__)

LOGGED_BODY_LENGTH = 300


class ResponseDecoder:
    def __init__(self, provider: Provider):
        self.provider = provider

    def decode(self, status: int, body: bytes, model, headers=None) -> Envelope:
        """Decode one response.

        Args:
            status: HTTP status code.
            body: Raw response body.
            model: Item type for the envelope.
            headers: Response headers (only ``retry-after`` is read).

        Returns:
            ``Envelope[model]`` for 2xx responses.

        Raises:
            ApiError subclass for every non-2xx status or undecodable 2xx body.
        """
        if 200 <= status <= 299:
            return self._decode_success(body, model)
        message = "" if status == 429 else self.provider.error_message(body)
        raise error_for_status(status, message, headers)

    def _decode_success(self, body: bytes, model) -> Envelope:
        try:
            data = json.loads(body) if body else None
        except ValueError as e:
            raise InvalidResponseShapeError(f"response body is not JSON: {e}") from e
        if not isinstance(data, dict):
            raise InvalidResponseShapeError(
                f"expected a JSON object envelope, got {type(data).__name__}"
            )

        p = self.provider
        items = data.get(p.items_key)
        total = lookup(data, p.total_path)
        if items is None and str(total) == "0":
            # Google Books omits the item list entirely on empty results
            items = []
        raw = {
            "items": items,
            "total": total,
            "next_url": lookup(data, p.next_path),
            "self_link": lookup(data, p.self_path),
            "meta": data.get(p.meta_key) if p.meta_key else None,
        }
        try:
            return Envelope[model].model_validate(raw)
        except ValidationError as e:
            logger.warning(
                "Failed to decode %s response: %s; body: %s",
                p.name,
                e.error_count(),
                body[:LOGGED_BODY_LENGTH].decode("utf-8", errors="replace"),
            )
            raise DecodingFailedError(f"{e.error_count()} validation error(s): {e}") from e
