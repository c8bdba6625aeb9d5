from encryption import decrypt_fields, encrypt_fields

CONTACT = {
    "name": "Asha Rao",
    "email": "asha@studio.com",
    "phone": "+91 98765 43210",
    "message": "Looking to redo a 3BHK apartment.",
    "service": "residential",
}


def test_roundtrip_returns_sensitive_fields():
    blob = encrypt_fields(CONTACT)
    assert decrypt_fields(blob) == {
        "name": "Asha Rao",
        "email": "asha@studio.com",
        "phone": "+91 98765 43210",
        "message": "Looking to redo a 3BHK apartment.",
    }


def test_blob_is_iv_and_ciphertext_hex():
    iv_hex, cipher_hex = encrypt_fields(CONTACT).split(":")
    assert len(iv_hex) == 32
    bytes.fromhex(cipher_hex)
    assert "Asha" not in cipher_hex


def test_each_record_gets_its_own_iv():
    assert encrypt_fields(CONTACT) != encrypt_fields(CONTACT)


def test_missing_phone_is_stored_empty():
    blob = encrypt_fields({"name": "A", "email": "a@studio.com", "message": "hello there"})
    assert decrypt_fields(blob)["phone"] == ""


def test_unreadable_blob_returns_none():
    assert decrypt_fields("not-a-blob") is None
    assert decrypt_fields("zz:zz") is None
    assert decrypt_fields(None) is None


def test_wrong_secret_does_not_return_fields():
    blob = encrypt_fields(CONTACT, secret="first-secret")
    assert decrypt_fields(blob, secret="other-secret") != decrypt_fields(blob, secret="first-secret")
