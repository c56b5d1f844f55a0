import base64
import pickle

import pytest

from sui_sdk.errors import InvalidDerivationPath, InvalidMnemonic
from sui_sdk.utils.hash import blake2b_256
from sui_sdk.wallet.derivation import (DEFAULT_PATH, HARDENED_OFFSET,
                                       DerivationPath, child_key,
                                       derive_ed25519_private_key, master_key)
from sui_sdk.wallet.keypair import (SERIALIZED_SIGNATURE_LENGTH, KeyPair,
                                    Signature, address_from_public_key,
                                    derive_keypair, generate_keypair, sign,
                                    verify)
from sui_sdk.wallet.mnemonic import (check_mnemonic, generate_mnemonic,
                                     mnemonic_to_seed, normalize_mnemonic,
                                     validate_mnemonic)
from sui_sdk.wallet.wallet import Wallet

# --- mnemonic ----------------------------------------------------------------


@pytest.mark.parametrize("words", [12, 15, 18, 21, 24])
def test_generated_mnemonics_validate(words):
    phrase = generate_mnemonic(words)
    assert len(phrase.split()) == words
    assert validate_mnemonic(phrase)


def test_generation_uses_fresh_entropy():
    assert generate_mnemonic(12) != generate_mnemonic(12)
    with pytest.raises(ValueError):
        generate_mnemonic(13)


def test_bip39_reference_seed(mnemonic_12):
    # BIP-39 reference vector (passphrase "TREZOR")
    seed = mnemonic_to_seed(mnemonic_12, passphrase="TREZOR")
    assert seed.hex() == (
        "c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e53495531f"
        "09a6987599d18264c1e1c92f2cf141630c7a3c4ab7c81b2f001698e7463b04"
    )


def test_normalization_is_tolerant_of_case_and_spacing(mnemonic_12):
    messy = "  " + mnemonic_12.upper().replace(" ", "   ") + "\n"
    assert normalize_mnemonic(messy) == mnemonic_12
    assert mnemonic_to_seed(messy) == mnemonic_to_seed(mnemonic_12)


@pytest.mark.parametrize(
    "phrase, match",
    [
        ("abandon " * 10 + "about", "expected 12"),
        ("abandon " * 11 + "zzzzzz", "not in the English word list"),
        ("abandon " * 12, "checksum"),
    ],
)
def test_invalid_mnemonics(phrase, match):
    assert not validate_mnemonic(phrase)
    with pytest.raises(InvalidMnemonic, match=match):
        check_mnemonic(phrase)
    with pytest.raises(InvalidMnemonic):
        derive_keypair(phrase)


# --- derivation --------------------------------------------------------------


def test_slip10_ed25519_vector_1():
    seed = bytes.fromhex("000102030405060708090a0b0c0d0e0f")
    key, chain = master_key(seed)
    assert key.hex() == "2b4be7f19ee27bbf30c667b642d5f4aa69fd169872f8fc3059c08ebae2eb19e7"
    assert chain.hex() == "90046a93de5380a72b5e45010748567d5ea02bbf6522f979e05c0d8d8ca9fffb"
    child, child_chain = child_key(key, chain, HARDENED_OFFSET)
    assert child.hex() == "68e0fe46dfb67e368c75379acec591dad19df3cde26e63b93a8e704f1dade7a3"
    assert child_chain.hex() == "8b59aa11380b624e81507a27fedda59fea6d0b779a778918a2fd3590e16e9c69"
    assert derive_ed25519_private_key(seed, [HARDENED_OFFSET]) == child


def test_unhardened_child_is_refused():
    key, chain = master_key(bytes(16))
    with pytest.raises(ValueError, match="hardened"):
        child_key(key, chain, 1)


def test_derivation_path_parse_and_format():
    path = DerivationPath.parse("m/44'/784'/3'/0'/7'")
    assert path == DerivationPath(3, 0, 7)
    assert str(path) == "m/44'/784'/3'/0'/7'"
    assert DerivationPath.parse("m/44h/784H/3'/0'/7'") == path
    assert str(DEFAULT_PATH) == "m/44'/784'/0'/0'/0'"
    assert path.indices[0] == 44 + HARDENED_OFFSET


@pytest.mark.parametrize(
    "bad",
    [
        "44'/784'/0'/0'/0'",
        "m/44'/784'/0'/0'",
        "m/44'/784'/0'/0'/0'/0'",
        "m/44'/784'/0'/0'/0",
        "m/44'/60'/0'/0'/0'",
        "m/44'/784'/2147483648'/0'/0'",
        "m/44'/784'/x'/0'/0'",
    ],
)
def test_invalid_paths(bad):
    with pytest.raises(InvalidDerivationPath):
        DerivationPath.parse(bad)


@pytest.mark.parametrize("bad", [None, 5, b"m/44'/784'/0'/0'/0'"])
def test_non_string_paths_are_rejected(mnemonic_24, bad):
    with pytest.raises(InvalidDerivationPath):
        DerivationPath.parse(bad)
    with pytest.raises(InvalidDerivationPath):
        derive_keypair(mnemonic_24, bad)


def test_out_of_range_path_components():
    with pytest.raises(InvalidDerivationPath):
        DerivationPath(account=-1)
    with pytest.raises(InvalidDerivationPath):
        DerivationPath(address_index=HARDENED_OFFSET)


# --- key pairs and signatures ------------------------------------------------

# RFC 8032 section 7.1, test 1
RFC8032_SK = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PK = bytes.fromhex("d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a")
RFC8032_SIG = bytes.fromhex(
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065224901555fb8821590a33bac"
    "c61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)


def test_rfc8032_vector():
    kp = KeyPair.from_private_bytes(RFC8032_SK)
    assert kp.public_key == RFC8032_PK
    sig = kp.sign(b"")
    assert sig.signature == RFC8032_SIG
    assert verify(RFC8032_PK, b"", sig)


def test_address_is_blake2b_of_flag_and_public_key():
    kp = KeyPair.from_private_bytes(RFC8032_SK)
    assert kp.address == "0x" + blake2b_256(b"\x00" + RFC8032_PK).hex()
    assert address_from_public_key(RFC8032_PK) == kp.address
    assert kp.public_key_hex == "0x" + RFC8032_PK.hex()
    assert base64.b64decode(kp.public_key_b64) == RFC8032_PK
    with pytest.raises(ValueError):
        address_from_public_key(b"\x01" * 33)


def test_derivation_is_deterministic(mnemonic_24):
    a = derive_keypair(mnemonic_24)
    b = derive_keypair(mnemonic_24, "m/44'/784'/0'/0'/0'")
    c = derive_keypair(mnemonic_24, DerivationPath(0, 0, 1))
    assert a == b
    assert a.address == b.address
    assert a != c
    assert derive_keypair(mnemonic_24, passphrase="x") != a


def test_signature_serialization(alice):
    digest = blake2b_256(b"message")
    sig = sign(alice, digest)
    raw = sig.to_bytes()
    assert len(raw) == SERIALIZED_SIGNATURE_LENGTH
    assert raw[0] == 0
    assert raw[65:] == alice.public_key
    assert Signature.from_bytes(raw) == sig
    assert Signature.from_b64(sig.to_b64()) == sig
    assert sig.signer == alice.address
    # deterministic
    assert sign(alice, digest) == sig


def test_verify_never_raises(alice, bob):
    digest = blake2b_256(b"m")
    sig = alice.sign(digest)
    assert verify(alice.public_key, digest, sig)
    assert verify(alice.public_key, digest, sig.to_bytes())
    assert verify(alice.public_key, digest, sig.signature)
    assert not verify(alice.public_key, blake2b_256(b"other"), sig)
    assert not verify(bob.public_key, digest, sig)
    assert not verify(alice.public_key, digest, b"\x00" * 10)
    assert not verify(b"\x01", digest, sig.signature)
    tampered = bytearray(sig.to_bytes())
    tampered[5] ^= 0xFF
    assert not verify(alice.public_key, digest, bytes(tampered))


def test_signature_shape_is_validated():
    with pytest.raises(ValueError):
        Signature(signature=b"\x00" * 63, public_key=b"\x00" * 32)
    with pytest.raises(ValueError, match="flag"):
        Signature(signature=b"\x00" * 64, public_key=b"\x00" * 32, flag=1)
    with pytest.raises(ValueError):
        Signature.from_bytes(b"\x00" * 96)


def test_keypair_does_not_leak_secret(alice):
    assert "address=" in repr(alice)
    assert not hasattr(alice, "__dict__")
    with pytest.raises(TypeError):
        pickle.dumps(alice)


def test_generate_keypair_returns_matching_mnemonic():
    kp, phrase = generate_keypair(12)
    assert validate_mnemonic(phrase)
    assert derive_keypair(phrase) == kp


# --- wallet ------------------------------------------------------------------


def test_wallet_caches_and_finds_keys(mnemonic_24):
    w = Wallet(mnemonic_24)
    first = w.derive()
    assert w.derive("m/44'/784'/0'/0'/0'") is first
    second = w.derive_account(0, 0, 1)
    assert w.addresses() == [first.address, second.address]
    assert w.keypair_for(second.address) is second
    assert w.keypair_for("0x1234") is None
    assert "keys=2" in repr(w)


def test_wallets_are_independent(mnemonic_24):
    w1, w2 = Wallet(mnemonic_24), Wallet.generate(12)
    assert w1.derive() != w2.derive()
    assert len(w2.mnemonic.split()) == 12


def test_wallet_rejects_bad_mnemonic():
    with pytest.raises(InvalidMnemonic):
        Wallet("not a mnemonic")
