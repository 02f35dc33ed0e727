"""
Tamper Detection Tests.

Any modification of a frame must be rejected by Poly1305 authentication, and
no plaintext (original or altered) may be released.

Security property: integrity ensures attackers cannot modify frame contents
without detection.
"""

from __future__ import annotations

import io

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lib.attacker import (
    flip_bit,
    flip_ciphertext_bit,
    replace_nonce,
    splice_ciphertext,
    truncate,
)
from secure_stream.codec import FRAME_HEADER_SIZE, NONCE_SIZE, TAG_SIZE, decode_frame
from secure_stream.errors import AuthenticationFailed, SecureStreamError, TruncatedFrame
from secure_stream.stream import SecureReader

# Mark all tests in this module as adversarial
pytestmark = pytest.mark.adversarial

PLAINTEXT = b"original content that should not be modified"


@pytest.fixture
def valid_frame(client_codec) -> bytes:
    """A valid frame from the client for tampering tests."""
    return client_codec.encode(PLAINTEXT)


class TestCiphertextTampering:
    """Tampering with the encrypted payload."""

    def test_untampered_frame_decodes(self, server_codec, valid_frame: bytes) -> None:
        assert server_codec.parse(valid_frame) == PLAINTEXT

    def test_every_ciphertext_bit(self, server_codec, valid_frame: bytes) -> None:
        """Flipping any single ciphertext bit is detected."""
        ciphertext_bits = (len(valid_frame) - FRAME_HEADER_SIZE) * 8

        for bit in range(ciphertext_bits):
            with pytest.raises(AuthenticationFailed):
                server_codec.decode(io.BytesIO(flip_ciphertext_bit(valid_frame, bit)))

    @given(data=st.data())
    @settings(max_examples=100)
    def test_random_bit_flip_property(self, client_codec, server_codec, data) -> None:
        plaintext = data.draw(st.binary(min_size=0, max_size=256))
        frame = client_codec.encode(plaintext)
        ciphertext_bits = (len(frame) - FRAME_HEADER_SIZE) * 8
        bit = data.draw(st.integers(min_value=0, max_value=ciphertext_bits - 1))

        with pytest.raises(AuthenticationFailed):
            server_codec.parse(flip_ciphertext_bit(frame, bit))

    def test_tag_zeroed(self, server_codec, valid_frame: bytes) -> None:
        tampered = valid_frame[:FRAME_HEADER_SIZE] + bytes(TAG_SIZE) + valid_frame[-len(PLAINTEXT):]
        with pytest.raises(AuthenticationFailed):
            server_codec.parse(tampered)

    def test_ciphertext_shortened_consistently(self, server_codec, valid_frame: bytes) -> None:
        """Dropping ciphertext bytes and fixing the length still fails."""
        shortened = splice_ciphertext(valid_frame, valid_frame[FRAME_HEADER_SIZE:-1])
        with pytest.raises(AuthenticationFailed):
            server_codec.parse(shortened)

    def test_ciphertext_extended_consistently(self, server_codec, valid_frame: bytes) -> None:
        extended = splice_ciphertext(valid_frame, valid_frame[FRAME_HEADER_SIZE:] + b"\x00")
        with pytest.raises(AuthenticationFailed):
            server_codec.parse(extended)


class TestNonceTampering:
    """Tampering with the cleartext nonce."""

    @pytest.mark.parametrize("bit", [0, 7, 64, 100, NONCE_SIZE * 8 - 1])
    def test_nonce_bit_flip(self, server_codec, valid_frame: bytes, bit: int) -> None:
        with pytest.raises(AuthenticationFailed):
            server_codec.parse(flip_bit(valid_frame, bit))

    def test_nonce_swapped_between_frames(self, client_codec, server_codec) -> None:
        frame_a = client_codec.encode(b"message a")
        frame_b = client_codec.encode(b"message b")

        with pytest.raises(AuthenticationFailed):
            server_codec.parse(replace_nonce(frame_a, frame_b[:NONCE_SIZE]))


class TestLengthTampering:
    """Tampering with the length field."""

    def test_length_increased_truncates(self, server_codec, valid_frame: bytes) -> None:
        """Length larger than the data present: the stream ends mid-frame."""
        tampered = flip_bit(valid_frame, NONCE_SIZE * 8 + 8)  # 60 -> 316
        with pytest.raises(TruncatedFrame):
            server_codec.decode(io.BytesIO(tampered))

    def test_length_decreased(self, server_codec, valid_frame: bytes) -> None:
        """Length smaller than the real ciphertext fails authentication."""
        tampered = flip_bit(valid_frame, NONCE_SIZE * 8 + 2)  # 60 -> 56
        with pytest.raises(AuthenticationFailed):
            server_codec.decode(io.BytesIO(tampered))


class TestReflection:
    """Frames sent by one peer replayed back at it."""

    def test_reflected_frame_decrypts_under_same_key(self, client_codec, valid_frame) -> None:
        """Both directions share one key, so reflection is not detected.

        Documents a known limitation of the single shared key design.
        """
        assert client_codec.parse(valid_frame) == PLAINTEXT


class TestNoPlaintextLeak:
    """Failure never hands back plaintext."""

    def test_reader_buffer_untouched_on_failure(self, shared_key, valid_frame) -> None:
        tampered = flip_ciphertext_bit(valid_frame, TAG_SIZE * 8 + 3)
        reader = SecureReader(io.BytesIO(tampered), shared_key)
        buffer = bytearray(b"\xee" * 128)

        with pytest.raises(AuthenticationFailed):
            reader.readinto(buffer)

        assert buffer == bytearray(b"\xee" * 128)

    def test_error_message_has_no_plaintext(self, server_codec, valid_frame) -> None:
        with pytest.raises(AuthenticationFailed) as exc_info:
            server_codec.parse(flip_ciphertext_bit(valid_frame, 0))

        assert PLAINTEXT.decode() not in str(exc_info.value)
        assert str(exc_info.value) == "Frame authentication failed"

    @pytest.mark.parametrize("keep", [0, 10, NONCE_SIZE, FRAME_HEADER_SIZE, FRAME_HEADER_SIZE + 5])
    def test_truncation_never_returns_data(self, shared_key, valid_frame, keep: int) -> None:
        stream = io.BytesIO(truncate(valid_frame, keep))
        if keep == 0:
            assert decode_frame(stream, shared_key) is None
            return

        with pytest.raises(SecureStreamError):
            decode_frame(stream, shared_key)
