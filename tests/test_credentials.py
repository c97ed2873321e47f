import re
import threading

import pytest

from digest_transport.challenge import Challenge
from digest_transport.credentials import Credentials, h, kd, request_uri, select_qop
from digest_transport.exceptions import UnsupportedAlgorithm

RFC_NONCE = "dcd98b7102dd2f0e8b11d0f600bfb0c093"
RFC_OPAQUE = "5ccc069c403ebaf9f0171e9517f40e41"


def build_credentials(**overrides):
    values = {
        "username": "Mufasa",
        "realm": "testrealm@host.com",
        "nonce": RFC_NONCE,
        "digest_uri": "/dir/index.html",
        "method": "GET",
        "password": "Circle Of Life",
    }
    values.update(overrides)
    return Credentials(**values)


def test_rfc2617_legacy_response_digest():
    header = build_credentials().authorize()

    assert 'response="670fd8c2df070c60b045671b8b24ff02"' in header
    assert "qop=" not in header
    assert "nc=" not in header
    assert "cnonce=" not in header


def test_rfc2617_qop_auth_response_digest():
    credentials = build_credentials(message_qop="auth", opaque=RFC_OPAQUE)

    header = credentials.authorize(cnonce="0a4f113b")

    assert header == (
        'Digest username="Mufasa", realm="testrealm@host.com", '
        f'nonce="{RFC_NONCE}", uri="/dir/index.html", '
        'response="6629fae49393a05397450978507c4ef1", algorithm="MD5", '
        f'opaque="{RFC_OPAQUE}", qop=auth, nc=00000001, cnonce="0a4f113b"'
    )


def test_digest_is_deterministic_for_fixed_inputs():
    first = build_credentials(message_qop="auth").authorize(cnonce="abc")
    second = build_credentials(message_qop="auth").authorize(cnonce="abc")

    assert first == second


def test_ha1_and_ha2_helpers():
    credentials = build_credentials()

    assert credentials.ha1() == h("Mufasa:testrealm@host.com:Circle Of Life")
    assert credentials.ha2() == h("GET:/dir/index.html")
    assert kd("a", "b") == h("a:b")


def test_nonce_count_increments_per_call():
    credentials = build_credentials(message_qop="auth")

    first = credentials.authorize(cnonce="c1")
    second = credentials.authorize(cnonce="c1")

    assert "nc=00000001" in first
    assert "nc=00000002" in second
    assert first != second
    assert credentials.nonce_count == 2


def test_generated_cnonce_is_random_hex():
    credentials = build_credentials(message_qop="auth")

    credentials.authorize()
    first = credentials.cnonce
    credentials.authorize()

    assert re.fullmatch(r"[0-9a-f]{16}", first)
    assert credentials.cnonce != first


def test_nonce_count_never_repeats_across_threads():
    credentials = build_credentials(message_qop="auth")
    headers: list[str] = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            value = credentials.authorize(cnonce="fixed")
            with lock:
                headers.append(value)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    counts = {re.search(r"nc=([0-9a-f]{8})", value).group(1) for value in headers}
    assert len(counts) == 200
    assert credentials.nonce_count == 200


def test_opaque_omitted_when_empty():
    header = build_credentials().authorize()

    assert "opaque=" not in header
    assert header.index("response=") < header.index("algorithm=")


@pytest.mark.parametrize("algorithm", ["MD5-sess", "SHA-256", "md5"])
def test_unsupported_algorithms(algorithm):
    with pytest.raises(UnsupportedAlgorithm):
        build_credentials(algorithm=algorithm).authorize()


def test_auth_int_is_unsupported():
    credentials = build_credentials(message_qop="auth-int")

    with pytest.raises(UnsupportedAlgorithm):
        credentials.authorize()
    assert credentials.nonce_count == 0


def test_from_challenge_copies_fields():
    challenge = Challenge(realm="r", nonce="n", opaque="o", qop="auth-int,auth")

    credentials = Credentials.from_challenge(
        challenge, username="u", password="p", method="post", digest_uri="/x?y=1"
    )

    assert credentials.realm == "r"
    assert credentials.nonce == "n"
    assert credentials.opaque == "o"
    assert credentials.message_qop == "auth"
    assert credentials.method == "POST"
    assert credentials.nonce_count == 0
    assert "password" not in repr(credentials)


@pytest.mark.parametrize(
    ("qop", "expected"),
    [("", ""), ("auth", "auth"), ("auth, auth-int", "auth"), ("auth-int", "auth-int")],
)
def test_select_qop(qop, expected):
    assert select_qop(Challenge(realm="r", nonce="n", qop=qop)) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("http://fritz.box:49000/upnp/control/x_contact", "/upnp/control/x_contact"),
        ("https://host/path?arg=1&b=2", "/path?arg=1&b=2"),
        ("http://host", "/"),
        ("http://host?q=1", "/?q=1"),
    ],
)
def test_request_uri(url, expected):
    assert request_uri(url) == expected
