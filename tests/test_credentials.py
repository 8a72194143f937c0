import pytest
from argon2 import PasswordHasher

from secretwall.auth.credentials import CredentialVerifier
from secretwall.auth.passwords import hash_password, verify_password
from secretwall.errors import DuplicateUsername, InvalidCredentials, InvalidRegistration


@pytest.fixture()
def verifier(store):
    return CredentialVerifier(store)


def test_register_stores_hash_not_plaintext(verifier, store):
    user = verifier.register("alice", "pw1")
    assert user.password_hash != "pw1"
    assert user.password_hash.startswith("$argon2")
    assert store.find_by_username("alice").id == user.id


def test_register_twice_keeps_first_hash(verifier, store):
    verifier.register("alice", "pw1")
    original = store.find_by_username("alice").password_hash

    with pytest.raises(DuplicateUsername):
        verifier.register("alice", "other")

    assert store.find_by_username("alice").password_hash == original
    assert verifier.verify("alice", "pw1").username == "alice"


def test_register_requires_username_and_password(verifier):
    with pytest.raises(InvalidRegistration):
        verifier.register("   ", "pw")
    with pytest.raises(InvalidRegistration):
        verifier.register("alice", "")


def test_verify_accepts_only_registration_password(verifier):
    verifier.register("alice", "pw1")
    assert verifier.verify("alice", "pw1").username == "alice"
    for wrong in ["pw2", "PW1", "pw1 ", ""]:
        with pytest.raises(InvalidCredentials):
            verifier.verify("alice", wrong)


def test_unknown_user_and_wrong_password_look_the_same(verifier):
    verifier.register("alice", "pw1")
    with pytest.raises(InvalidCredentials) as unknown:
        verifier.verify("mallory", "pw1")
    with pytest.raises(InvalidCredentials) as wrong:
        verifier.verify("alice", "nope")
    assert str(unknown.value) == str(wrong.value)
    assert unknown.value.reason != wrong.value.reason


def test_account_without_local_password_cannot_log_in(verifier, store):
    store.create_local("carol", None)
    with pytest.raises(InvalidCredentials) as exc:
        verifier.verify("carol", "anything")
    assert exc.value.reason == "no local password"


def test_blank_username_is_rejected(verifier, store):
    store.create_federated("sub-1")
    with pytest.raises(InvalidCredentials) as exc:
        verifier.verify("", "anything")
    assert exc.value.reason == "unknown user"


def test_outdated_hash_is_upgraded_on_login(verifier, store):
    weak = PasswordHasher(time_cost=1, memory_cost=8, parallelism=1).hash("pw1")
    user = store.create_local("alice", weak)

    verifier.verify("alice", "pw1")

    upgraded = store.get(user.id).password_hash
    assert upgraded != weak
    assert verify_password(upgraded, "pw1")


def test_verify_password_handles_missing_or_garbage_hash():
    assert verify_password(None, "pw") is False
    assert verify_password("not-a-hash", "pw") is False
    assert verify_password(hash_password("pw"), "pw") is True
