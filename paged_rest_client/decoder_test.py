"""Unit tests for the response decoder state machine."""

import json

import pytest

from .decoder import ResponseDecoder
from .envelope import Notice, Resource, Volume
from .errors import (
    ApiError,
    AuthenticationFailedError,
    BadRequestError,
    DecodingFailedError,
    ForbiddenError,
    InvalidResponseShapeError,
    NotFoundError,
    RateLimitExceededError,
    ServerError,
    UnknownStatusError,
)
from .providers import FTC, GOOGLE_BOOKS, INSTAGRAM, SPOTIFY

FTC_BODY = {
    "jsonapi": {"version": "1.0"},
    "data": [
        {
            "type": "node--hsr_early_termination_notice",
            "id": "a1",
            "attributes": {
                "title": "Acme / Widget Co",
                "acquired-party": "Widget Co",
                "acquiring-party": "Acme",
                "transaction-number": "20110728",
                "acquired-entities": ["Widget Co"],
            },
            "links": {"self": {"href": "https://api.ftc.gov/v0/x/a1"}},
        },
    ],
    "meta": {"count": "1", "records-total": "57"},
    "links": {"self": {"href": "https://api.ftc.gov/v0/x"}},
}


def _body(data) -> bytes:
    return json.dumps(data).encode()


def describe_ResponseDecoder():
    @pytest.fixture
    def decoder():
        return ResponseDecoder(FTC)

    def describe_success():
        def it_decodes_typed_items(decoder):
            envelope = decoder.decode(200, _body(FTC_BODY), Notice)
            notice = envelope.items[0]
            assert notice.id == "a1"
            assert notice.attributes.acquiring_party == "Acme"
            assert notice.attributes.transaction_number == "20110728"
            assert notice.links["self"].href == "https://api.ftc.gov/v0/x/a1"

        def it_extracts_total_self_link_and_meta(decoder):
            envelope = decoder.decode(200, _body(FTC_BODY), Notice)
            assert envelope.total == 57
            assert envelope.self_link == "https://api.ftc.gov/v0/x"
            assert envelope.meta == {"count": "1", "records-total": "57"}
            assert envelope.next_url is None

        def it_accepts_any_2xx(decoder):
            assert decoder.decode(203, _body(FTC_BODY), Resource).items[0].id == "a1"

        def it_is_idempotent(decoder):
            first = decoder.decode(200, _body(FTC_BODY), Notice)
            second = decoder.decode(200, _body(FTC_BODY), Notice)
            assert first == second

        def it_reads_spotify_layout():
            body = {
                "items": [{"id": "t1", "name": "Song"}],
                "total": 40,
                "limit": 20,
                "offset": 0,
                "next": "https://api.spotify.com/v1/me/tracks?offset=20&limit=20",
                "href": "https://api.spotify.com/v1/me/tracks?offset=0&limit=20",
            }
            envelope = ResponseDecoder(SPOTIFY).decode(200, _body(body), Resource)
            assert envelope.items[0].name == "Song"
            assert envelope.total == 40
            assert envelope.next_url.endswith("offset=20&limit=20")

        def it_reads_instagram_paging():
            body = {"data": [{"id": 17}], "paging": {"next": "https://graph.instagram.com/me/media?after=x"}}
            envelope = ResponseDecoder(INSTAGRAM).decode(200, _body(body), Resource)
            assert envelope.items[0].id == "17"
            assert envelope.next_url == "https://graph.instagram.com/me/media?after=x"

        def it_treats_missing_items_with_zero_total_as_empty():
            envelope = ResponseDecoder(GOOGLE_BOOKS).decode(200, _body({"totalItems": 0}), Volume)
            assert envelope.items == []
            assert envelope.total == 0

    def describe_decode_failures():
        def it_raises_decoding_failed_on_schema_mismatch(decoder):
            body = {"data": [{"type": "node"}]}  # no id
            with pytest.raises(DecodingFailedError):
                decoder.decode(200, _body(body), Notice)

        def it_raises_decoding_failed_when_items_missing(decoder):
            with pytest.raises(DecodingFailedError):
                decoder.decode(200, _body({"meta": {}}), Resource)

        def it_raises_invalid_shape_for_non_json(decoder):
            with pytest.raises(InvalidResponseShapeError):
                decoder.decode(200, b"<html>oops</html>", Resource)

        def it_raises_invalid_shape_for_non_object(decoder):
            with pytest.raises(InvalidResponseShapeError):
                decoder.decode(200, b"[1, 2]", Resource)

        def it_raises_invalid_shape_for_empty_body(decoder):
            with pytest.raises(InvalidResponseShapeError):
                decoder.decode(204, b"", Resource)

        def it_chains_the_validation_error(decoder):
            with pytest.raises(DecodingFailedError) as exc:
                decoder.decode(200, _body({"data": "nope"}), Resource)
            assert exc.value.__cause__ is not None

    def describe_errors():
        @pytest.mark.parametrize(
            "status,cls",
            [
                (400, BadRequestError),
                (401, AuthenticationFailedError),
                (403, ForbiddenError),
                (404, NotFoundError),
                (429, RateLimitExceededError),
                (500, ServerError),
                (502, ServerError),
                (409, UnknownStatusError),
                (301, UnknownStatusError),
            ],
        )
        def it_routes_status_codes(decoder, status, cls):
            with pytest.raises(cls):
                decoder.decode(status, _body(FTC_BODY), Notice)

        def it_never_returns_success_for_4xx_and_5xx(decoder):
            for status in range(400, 600):
                with pytest.raises(ApiError):
                    decoder.decode(status, _body(FTC_BODY), Notice)

        def it_ignores_body_for_429(decoder):
            with pytest.raises(RateLimitExceededError) as exc:
                decoder.decode(429, b"not even json", Resource, {"retry-after": "3"})
            assert exc.value.retry_after == 3.0

        def it_uses_provider_error_envelope(decoder):
            body = {"errors": [{"status": "400", "detail": "Invalid filter path"}]}
            with pytest.raises(BadRequestError) as exc:
                decoder.decode(400, _body(body), Resource)
            assert exc.value.message == "Invalid filter path"

        def it_falls_back_to_raw_text(decoder):
            with pytest.raises(ServerError) as exc:
                decoder.decode(503, b"upstream timeout", Resource)
            assert exc.value.message == "upstream timeout"
            assert exc.value.status == 503

        def it_parses_google_style_errors():
            body = {"error": {"code": 403, "message": "API key not valid"}}
            with pytest.raises(ForbiddenError) as exc:
                ResponseDecoder(GOOGLE_BOOKS).decode(403, _body(body), Volume)
            assert exc.value.message == "API key not valid (code 403)"
