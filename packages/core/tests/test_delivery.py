import httpx
import pytest

from sfrelay.core import DeliveryClient, DeliveryError, Sink


def _client(handler, host: str = "https://example.io") -> tuple[httpx.AsyncClient, DeliveryClient]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return http, DeliveryClient(http, host)


@pytest.mark.asyncio
async def test_sends_filtered_properties_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    http, client = _client(handler)
    async with http:
        await client.deliver(
            Sink(path="services/data/v52.0/sobjects/Lead", method="PATCH", properties_to_include=("email",)),
            {"email": "a@b.com", "secret": "x"},
            "the bearer token",
        )

    (request,) = seen
    assert request.method == "PATCH"
    assert str(request.url) == "https://example.io/services/data/v52.0/sobjects/Lead"
    assert request.headers["Authorization"] == "Bearer the bearer token"
    assert request.headers["Content-Type"] == "application/json"
    assert request.content == b'{"email":"a@b.com"}'


@pytest.mark.asyncio
async def test_empty_allow_list_sends_everything() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    http, client = _client(handler)
    async with http:
        await client.deliver(Sink(path="something", method="POST"), {"my": "properties"}, "t")

    assert seen[0].content == b'{"my":"properties"}'
    assert str(seen[0].url) == "https://example.io/something"


@pytest.mark.asyncio
async def test_non_2xx_raises_with_status_and_body_snippet() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="x" * 1000)

    http, client = _client(handler)
    async with http:
        with pytest.raises(DeliveryError) as excinfo:
            await client.deliver(Sink(path="p", method="POST"), {}, "t", event_name="$pageview")

    assert excinfo.value.status == 500
    assert excinfo.value.body == "x" * 200
    assert excinfo.value.event == "$pageview"


@pytest.mark.asyncio
async def test_redirect_is_not_success() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": "https://elsewhere.io"})

    http, client = _client(handler)
    async with http:
        with pytest.raises(DeliveryError) as excinfo:
            await client.deliver(Sink(path="p", method="POST"), {}, "t")

    assert excinfo.value.status == 302


@pytest.mark.asyncio
async def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    http, client = _client(handler)
    async with http:
        with pytest.raises(DeliveryError) as excinfo:
            await client.deliver(Sink(path="p", method="POST"), {}, "t")

    assert excinfo.value.status is None
