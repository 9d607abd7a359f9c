"""
Tests for webhook signature verification.
"""

from sentinel.webhooks.signature import compute_signature, verify_signature

SECRET = "It's a Secret to Everybody"
BODY = b"Hello, World!"


class TestVerifySignature:
    def test_known_vector(self):
        """Matches the documented GitHub example signature."""
        signature = (
            "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )
        assert compute_signature(BODY, SECRET) == signature
        assert verify_signature(BODY, signature, SECRET) is True

    def test_tampered_body_rejected(self):
        signature = compute_signature(BODY, SECRET)
        assert verify_signature(b"Hello, World?", signature, SECRET) is False

    def test_wrong_secret_rejected(self):
        signature = compute_signature(BODY, "other")
        assert verify_signature(BODY, signature, SECRET) is False

    def test_missing_header_rejected(self):
        assert verify_signature(BODY, None, SECRET) is False
        assert verify_signature(BODY, "", SECRET) is False

    def test_unprefixed_header_rejected(self):
        digest = compute_signature(BODY, SECRET).removeprefix("sha256=")
        assert verify_signature(BODY, digest, SECRET) is False
        assert verify_signature(BODY, "sha1=" + digest, SECRET) is False

    def test_malformed_header_rejected(self):
        assert verify_signature(BODY, "sha256=not-hex", SECRET) is False

    def test_unset_secret_rejects_everything(self):
        signature = compute_signature(BODY, "")
        assert verify_signature(BODY, signature, "") is False
