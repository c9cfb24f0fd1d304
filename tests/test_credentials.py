from sharepod.services.credentials import (
    ACCESS_CODE_ALPHABET,
    CredentialVerifier,
    access_code_matches,
    generate_access_code,
    generate_share_id,
    is_valid_access_code,
    normalize_access_code,
)


def test_share_ids_are_url_safe_and_unique():
    ids = {generate_share_id() for _ in range(200)}
    assert len(ids) == 200
    for share_id in ids:
        assert len(share_id) == 16
        assert all(ch.isalnum() or ch in "-_" for ch in share_id)


def test_generated_access_code_uses_unambiguous_alphabet():
    code = generate_access_code(8)
    assert len(code) == 8
    assert set(code) <= set(ACCESS_CODE_ALPHABET)
    assert is_valid_access_code(code)


def test_normalize_access_code():
    assert normalize_access_code(None) is None
    assert normalize_access_code("   ") is None
    assert normalize_access_code(" ab12cd ") == "AB12CD"


def test_access_code_validation_bounds():
    assert not is_valid_access_code("ABC")
    assert is_valid_access_code("ABCD")
    assert is_valid_access_code("A" * 12)
    assert not is_valid_access_code("A" * 13)
    assert not is_valid_access_code("AB-12")


def test_access_code_match_is_case_insensitive():
    assert access_code_matches("AB12CD", "ab12cd")
    assert access_code_matches("AB12CD", " AB12CD ")
    assert not access_code_matches("AB12CD", "AB12CE")
    assert not access_code_matches("AB12CD", "")


def test_password_hash_roundtrip_and_salting():
    verifier = CredentialVerifier(rounds=1000)
    first = verifier.hash_password("s3cret")
    second = verifier.hash_password("s3cret")
    assert first != second
    assert first.startswith("$pbkdf2-sha256$1000$")
    assert verifier.verify_password("s3cret", first)
    assert not verifier.verify_password("wrong", first)


def test_verify_password_rejects_missing_or_garbled_hash():
    verifier = CredentialVerifier(rounds=1000)
    assert verifier.verify_password("s3cret", None) is False
    assert verifier.verify_password("s3cret", "") is False
    assert verifier.verify_password("s3cret", "not-a-hash") is False
