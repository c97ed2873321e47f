import pytest

from digest_transport.challenge import Challenge, parse_challenge
from digest_transport.exceptions import MalformedChallenge


def test_parses_quoted_and_bare_parameters():
    challenge = parse_challenge(
        'Digest realm="testrealm@host.com", qop=auth, '
        'nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093", '
        'opaque="5ccc069c403ebaf9f0171e9517f40e41", algorithm=MD5, stale=FALSE'
    )

    assert challenge == Challenge(
        realm="testrealm@host.com",
        nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093",
        opaque="5ccc069c403ebaf9f0171e9517f40e41",
        stale="FALSE",
        algorithm="MD5",
        qop="auth",
    )
    assert challenge.is_stale is False


def test_algorithm_defaults_to_md5():
    challenge = parse_challenge('Digest realm="r", nonce="n"')

    assert challenge.algorithm == "MD5"
    assert challenge.qop == ""
    assert challenge.qop_options == ()


def test_quoted_algorithm_and_qop_are_accepted():
    challenge = parse_challenge('Digest realm="r", nonce="n", algorithm="MD5", qop="auth"')

    assert challenge.algorithm == "MD5"
    assert challenge.qop == "auth"


def test_comma_inside_quotes_does_not_split():
    challenge = parse_challenge(
        'Digest realm="a, b", domain="/one /two", nonce="n", qop="auth,auth-int"'
    )

    assert challenge.realm == "a, b"
    assert challenge.domain == "/one /two"
    assert challenge.qop_options == ("auth", "auth-int")


def test_escaped_quote_is_unescaped():
    challenge = parse_challenge(r'Digest realm="say \"hi\"", nonce="n"')

    assert challenge.realm == 'say "hi"'


def test_surrounding_whitespace_is_ignored():
    challenge = parse_challenge('  \tDigest   realm="r" ,  nonce="n"  \r\n')

    assert challenge.realm == "r"
    assert challenge.nonce == "n"


def test_stale_flag():
    assert parse_challenge('Digest realm="r", nonce="n", stale=true').is_stale
    assert parse_challenge('Digest realm="r", nonce="n", stale="TRUE"').is_stale


def test_structured_fields_round_trip():
    original = Challenge(
        realm="fritz.box", domain="/", nonce="ABC", opaque="xyz", stale="true", qop="auth"
    )
    header = "Digest " + ", ".join(f'{key}="{value}"' for key, value in original.as_dict().items())

    assert parse_challenge(header) == original


@pytest.mark.parametrize(
    "header",
    [
        'Basic realm="r"',
        'digest realm="r", nonce="n"',
        'Digestrealm="r"',
        "",
        "Digest ",
        'Digest realm="r", nonce',
        'Digest realm="r, nonce="n"',
    ],
)
def test_malformed_headers_are_rejected(header):
    with pytest.raises(MalformedChallenge):
        parse_challenge(header)


def test_unknown_key_rejected_in_strict_mode():
    with pytest.raises(MalformedChallenge) as excinfo:
        parse_challenge('Digest realm="r", nonce="n", charset=UTF-8')

    assert "charset" in str(excinfo.value)


def test_unknown_key_ignored_in_lenient_mode(caplog):
    with caplog.at_level("DEBUG", logger="digest_transport.challenge"):
        challenge = parse_challenge(
            'Digest realm="r", nonce="n", charset=UTF-8, userhash=false', strict=False
        )

    assert challenge == Challenge(realm="r", nonce="n")
    assert "charset" in caplog.text
