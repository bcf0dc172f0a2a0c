"""Tests for classify() and DeviceType."""

import pytest

from lanscan.discovery.device_type import (
    BLUESOUND_SERVICE_TYPE,
    QOBUZ_CONNECT_SERVICE_TYPE,
    SPOTIFY_CONNECT_SERVICE_TYPE,
    VOLUMIO_SERVICE_TYPE,
    WATCHED_SERVICE_TYPES,
    DeviceType,
    classify,
    normalize_service_type,
)


@pytest.mark.parametrize(
    "service_type, expected",
    [
        (BLUESOUND_SERVICE_TYPE, DeviceType.BLUESOUND),
        (SPOTIFY_CONNECT_SERVICE_TYPE, DeviceType.SPOTIFY_CONNECT),
        (QOBUZ_CONNECT_SERVICE_TYPE, DeviceType.QOBUZ_CONNECT),
    ],
)
def test_known_service_types(service_type, expected):
    assert classify(service_type) is expected


def test_unknown_service_type_is_generic():
    assert classify("_airplay._tcp.local.") is DeviceType.GENERIC
    assert classify("") is DeviceType.GENERIC


def test_non_string_is_generic():
    assert classify(None) is DeviceType.GENERIC  # type: ignore[arg-type]


def test_lookup_ignores_case_and_trailing_dot():
    assert classify("_MUSC._tcp.local") is DeviceType.BLUESOUND
    assert classify(" _spotify-connect._tcp.local. ") is (
        DeviceType.SPOTIFY_CONNECT
    )


def test_http_service_needs_volumio_name():
    assert (
        classify(VOLUMIO_SERVICE_TYPE, "Volumio Kitchen") is DeviceType.VOLUMIO
    )
    assert classify(VOLUMIO_SERVICE_TYPE, "my-VOLUMIO") is DeviceType.VOLUMIO
    assert classify(VOLUMIO_SERVICE_TYPE, "Printer") is DeviceType.GENERIC
    assert classify(VOLUMIO_SERVICE_TYPE) is DeviceType.GENERIC


def test_name_hint_only_matters_for_http():
    assert (
        classify("_airplay._tcp.local.", "volumio") is DeviceType.GENERIC
    )
    assert classify(BLUESOUND_SERVICE_TYPE, "Printer") is DeviceType.BLUESOUND


def test_watched_service_types_all_classify():
    assert len(WATCHED_SERVICE_TYPES) == 4
    for service_type in WATCHED_SERVICE_TYPES:
        assert normalize_service_type(service_type) == service_type


def test_device_type_values_are_wire_names():
    assert [t.value for t in DeviceType] == [
        "Bluesound",
        "Volumio",
        "SpotifyConnect",
        "QobuzConnect",
        "Generic",
    ]


def test_normalize_service_type_empty():
    assert normalize_service_type("") == ""
