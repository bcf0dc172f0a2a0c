import asyncio
from typing import List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest
from zeroconf import Error as ZeroconfError
from zeroconf import InterfaceChoice, IPVersion
from zeroconf.asyncio import AsyncServiceBrowser, AsyncServiceInfo, AsyncZeroconf

from lanscan.discovery.mdns.mdns_browser import MdnsBrowser
from lanscan.discovery.mdns.service_browser import (
    ServiceBrowser,
    instance_name,
    qualify_service_type,
)
from lanscan.discovery.network_error import NetworkError
from lanscan.test.scan_fixtures import wait_until

MUSC = "_musc._tcp.local."
SPOTIFY = "_spotify-connect._tcp.local."

RecordT = Tuple[str, str, str, int]


class RecordingClient(MdnsBrowser.Client):
    __test__ = False

    def __init__(self) -> None:
        self.records: List[RecordT] = []

    async def _on_record(
        self, ip: str, name: str, service_type: str, port: int
    ) -> None:
        self.records.append((ip, name, service_type, port))


def make_info(
    port: Optional[int] = 11000,
    addresses: Optional[List[str]] = None,
) -> MagicMock:
    info = MagicMock(spec=AsyncServiceInfo)
    info.port = port
    info.parsed_addresses.return_value = (
        addresses if addresses is not None else ["192.168.1.20"]
    )
    return info


@pytest.fixture
def client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def mock_zc(mocker):
    zc = AsyncMock(spec=AsyncZeroconf)
    zc.zeroconf = MagicMock()
    zc.async_get_service_info = AsyncMock(return_value=make_info())
    mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncZeroconf",
        return_value=zc,
    )
    return zc


@pytest.fixture
def mock_browser_cls(mocker):
    return mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncServiceBrowser",
        return_value=AsyncMock(spec=AsyncServiceBrowser),
    )


async def resolve_one(
    browser: ServiceBrowser, client: RecordingClient, type_: str, name: str
) -> None:
    """Runs the browse task until |name| was processed, then cancels it."""
    run_task = asyncio.create_task(browser.run())
    browser.add_service(MagicMock(), type_, name)
    # Two queue round-trips make sure the resolve has finished.
    for _ in range(5):
        await asyncio.sleep(0)
    run_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run_task


# --- Construction ---


def test_client_none_raises():
    with pytest.raises(ValueError, match="Client cannot be None"):
        ServiceBrowser(None)  # type: ignore[arg-type]


def test_client_wrong_type_raises():
    with pytest.raises(TypeError, match="MdnsBrowser.Client"):
        ServiceBrowser(object())  # type: ignore[arg-type]


def test_bad_service_type_raises(client):
    with pytest.raises(ValueError, match="must start with '_'"):
        ServiceBrowser(client, ["musc._tcp.local."])


def test_single_string_service_types_raises(client):
    with pytest.raises(TypeError):
        ServiceBrowser(client, MUSC)


def test_empty_service_types_raises(client):
    with pytest.raises(ValueError, match="At least one service type"):
        ServiceBrowser(client, [])


def test_service_types_are_qualified_and_deduplicated(client):
    browser = ServiceBrowser(client, ["_musc", "_musc._tcp", MUSC, "_x._udp"])
    assert browser.service_types == (MUSC, "_x._udp.local.")


@pytest.mark.parametrize(
    "given, expected",
    [
        ("_musc", MUSC),
        ("_musc._tcp", MUSC),
        ("_MUSC._TCP.local.", MUSC),
        ("_sonos._udp.local", "_sonos._udp.local."),
    ],
)
def test_qualify_service_type(given, expected):
    assert qualify_service_type(given) == expected


def test_instance_name():
    assert instance_name("Living Room._musc._tcp.local.", MUSC) == "Living Room"
    assert instance_name("node.v2._musc._tcp.local.", MUSC) == "node.v2"
    assert instance_name("Other.thing.local.", MUSC) == "Other"


# --- Start / close ---


@pytest.mark.asyncio
async def test_start_creates_owned_zeroconf_and_browser(
    client, mock_zc, mock_browser_cls, mocker
):
    zc_cls = mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncZeroconf",
        return_value=mock_zc,
    )
    browser = ServiceBrowser(client, [MUSC, SPOTIFY])

    await browser.start()

    zc_cls.assert_called_once_with(
        interfaces=InterfaceChoice.All, ip_version=IPVersion.V4Only
    )
    mock_browser_cls.assert_called_once_with(
        mock_zc.zeroconf, [MUSC, SPOTIFY], listener=browser
    )

    await browser.close()
    mock_browser_cls.return_value.async_cancel.assert_awaited_once()
    mock_zc.async_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_start_twice_raises(client, mock_zc, mock_browser_cls):
    browser = ServiceBrowser(client)
    await browser.start()
    with pytest.raises(RuntimeError, match="already been started"):
        await browser.start()
    await browser.close()


@pytest.mark.asyncio
async def test_bind_failure_raises_network_error(client, mocker):
    mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncZeroconf",
        side_effect=OSError("Address already in use"),
    )
    browser_cls = mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncServiceBrowser"
    )
    browser = ServiceBrowser(client)

    with pytest.raises(NetworkError, match="Address already in use") as info:
        await browser.start()

    assert isinstance(info.value.__cause__, OSError)
    browser_cls.assert_not_called()


@pytest.mark.asyncio
async def test_browse_failure_closes_owned_zeroconf(client, mock_zc, mocker):
    mocker.patch(
        "lanscan.discovery.mdns.service_browser.AsyncServiceBrowser",
        side_effect=ZeroconfError("boom"),
    )
    browser = ServiceBrowser(client)

    with pytest.raises(NetworkError):
        await browser.start()

    mock_zc.async_close.assert_awaited_once()
    # A later close has nothing left to release.
    await browser.close()
    mock_zc.async_close.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_with_shared_zc_does_not_close_it(
    client, mock_browser_cls
):
    shared_zc = AsyncMock(spec=AsyncZeroconf)
    shared_zc.zeroconf = MagicMock()
    browser = ServiceBrowser(client, zc_instance=shared_zc)

    await browser.start()
    await browser.close()

    mock_browser_cls.return_value.async_cancel.assert_awaited_once()
    shared_zc.async_close.assert_not_called()


@pytest.mark.asyncio
async def test_run_before_start_raises(client):
    browser = ServiceBrowser(client)
    with pytest.raises(RuntimeError, match="before start"):
        await browser.run()


# --- Resolving records ---


@pytest.mark.asyncio
async def test_added_service_is_resolved_and_reported(
    client, mock_zc, mock_browser_cls
):
    mock_zc.async_get_service_info.return_value = make_info(
        port=11000, addresses=["169.254.7.7", "192.168.1.20"]
    )
    browser = ServiceBrowser(client, resolve_timeout_ms=1500)
    await browser.start()

    await resolve_one(browser, client, MUSC, "Living Room._musc._tcp.local.")

    assert client.records == [("192.168.1.20", "Living Room", MUSC, 11000)]
    mock_zc.async_get_service_info.assert_awaited_once_with(
        MUSC, "Living Room._musc._tcp.local.", 1500
    )
    mock_zc.async_get_service_info.return_value.parsed_addresses.assert_called_with(
        IPVersion.V4Only
    )
    await browser.close()


@pytest.mark.asyncio
async def test_updated_service_is_reported_again(
    client, mock_zc, mock_browser_cls
):
    browser = ServiceBrowser(client)
    await browser.start()
    run_task = asyncio.create_task(browser.run())

    browser.add_service(MagicMock(), MUSC, "Node._musc._tcp.local.")
    browser.update_service(MagicMock(), MUSC, "Node._musc._tcp.local.")
    await wait_until(lambda: len(client.records) == 2)

    run_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run_task
    await browser.close()


@pytest.mark.asyncio
async def test_removed_service_is_ignored(client, mock_zc, mock_browser_cls):
    browser = ServiceBrowser(client)
    await browser.start()

    browser.remove_service(MagicMock(), MUSC, "Node._musc._tcp.local.")
    await resolve_one(browser, client, "_other._tcp.local.", "x")

    mock_zc.async_get_service_info.assert_not_called()
    assert client.records == []
    await browser.close()


@pytest.mark.parametrize(
    "info",
    [
        None,
        make_info(port=None),
        make_info(port=0),
        make_info(addresses=[]),
        make_info(addresses=["169.254.1.1"]),
    ],
)
@pytest.mark.asyncio
async def test_incomplete_records_are_dropped(
    client, mock_zc, mock_browser_cls, info
):
    mock_zc.async_get_service_info.return_value = info
    browser = ServiceBrowser(client)
    await browser.start()

    await resolve_one(browser, client, MUSC, "Node._musc._tcp.local.")

    assert client.records == []
    await browser.close()


@pytest.mark.asyncio
async def test_unwatched_type_is_not_resolved(
    client, mock_zc, mock_browser_cls
):
    browser = ServiceBrowser(client, [MUSC])
    await browser.start()

    await resolve_one(browser, client, SPOTIFY, "Node._spotify-connect._tcp.local.")

    mock_zc.async_get_service_info.assert_not_called()
    assert client.records == []
    await browser.close()


@pytest.mark.asyncio
async def test_resolve_error_does_not_end_run(
    client, mock_zc, mock_browser_cls
):
    mock_zc.async_get_service_info.side_effect = [
        ZeroconfError("bad packet"),
        make_info(port=4070, addresses=["192.168.1.21"]),
    ]
    browser = ServiceBrowser(client)
    await browser.start()
    run_task = asyncio.create_task(browser.run())

    browser.add_service(MagicMock(), SPOTIFY, "A._spotify-connect._tcp.local.")
    browser.add_service(MagicMock(), SPOTIFY, "B._spotify-connect._tcp.local.")
    await wait_until(lambda: len(client.records) == 1)

    assert client.records == [("192.168.1.21", "B", SPOTIFY, 4070)]
    run_task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await run_task
    await browser.close()


@pytest.mark.asyncio
async def test_callbacks_after_close_are_ignored(
    client, mock_zc, mock_browser_cls
):
    browser = ServiceBrowser(client)
    await browser.start()
    await browser.close()

    browser.add_service(MagicMock(), MUSC, "Late._musc._tcp.local.")
    await asyncio.sleep(0)

    mock_zc.async_get_service_info.assert_not_called()
