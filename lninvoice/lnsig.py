# -*- coding: utf-8 -*-
#
# lninvoice - BOLT11 payment request codec
# Copyright (C) 2018-2024 The Electrum developers
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation files
# (the "Software"), to deal in the Software without restriction,
# including without limitation the rights to use, copy, modify, merge,
# publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so,
# subject to the following conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF
# MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT HOLDERS
# BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN
# ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN
# CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.

"""Signing digest, signature verification and payee key recovery for BOLT11.

The elliptic curve operations sit behind `SignatureBackend`, so that the
codec does not care which secp256k1 implementation is used.
"""

from hashlib import sha256
from typing import Sequence, Optional

import electrum_ecc as ecc

from .bech32 import convertbits
from .util import InvoiceValidationError
from .logging import get_logger


_logger = get_logger(__name__)


SIGNATURE_LEN_BYTES = 65
SIGNATURE_LEN_DATA5 = SIGNATURE_LEN_BYTES * 8 // 5  # 104 groups, 520 bits
PUBKEY_LEN_BYTES = 33


def signing_digest(hrp: str, data5: Sequence[int]) -> bytes:
    # BOLT #11: the signature is over the SHA2 256-bit hash of the hrp as
    # utf-8 bytes, concatenated with the data part (excluding the signature)
    # with 0 bits appended to pad the data to the next byte boundary.
    msg = hrp.encode("ascii") + bytes(convertbits(data5, 5, 8, True))
    return sha256(msg).digest()


class SignatureBackend:
    """Recoverable-ECDSA capabilities needed by the codec."""

    def verify(self, pubkey: bytes, digest: bytes, sig64: bytes) -> bool:
        raise NotImplementedError()

    def recover(self, digest: bytes, sig64: bytes, recid: int) -> bytes:
        """Returns the compressed public key. Raises on failure."""
        raise NotImplementedError()

    def is_pubkey(self, pubkey: bytes) -> bool:
        raise NotImplementedError()


class LibSecp256k1Backend(SignatureBackend):
    """Uses libsecp256k1, through electrum_ecc.

    Holds no state; a single instance is shared by all callers.
    """

    def verify(self, pubkey: bytes, digest: bytes, sig64: bytes) -> bool:
        try:
            key = ecc.ECPubkey(pubkey)
        except ecc.InvalidECPointException:
            return False
        return key.ecdsa_verify(sig64, digest)

    def recover(self, digest: bytes, sig64: bytes, recid: int) -> bytes:
        key = ecc.ECPubkey.from_ecdsa_sig64(sig64, recid, digest)
        return key.get_public_key_bytes(compressed=True)

    def is_pubkey(self, pubkey: bytes) -> bool:
        return len(pubkey) == PUBKEY_LEN_BYTES and ecc.ECPubkey.is_pubkey_bytes(pubkey)


default_backend = LibSecp256k1Backend()


def split_signature(sig65: bytes):
    """Returns (sig64, recid)."""
    assert len(sig65) == SIGNATURE_LEN_BYTES, len(sig65)
    return sig65[:64], sig65[64]


def check_signature(
        hrp: str,
        data5: Sequence[int],
        sig65: bytes,
        *,
        explicit_pubkey: Optional[bytes] = None,
        backend: SignatureBackend = None,
) -> bytes:
    """Returns the payee pubkey (33 bytes) that signed the invoice.

    If the invoice carried an `n` field, its key is verified against the
    signature. Otherwise the key is recovered from the signature.
    Raises InvoiceValidationError.
    """
    if backend is None:
        backend = default_backend
    digest = signing_digest(hrp, data5)
    sig64, recid = split_signature(sig65)
    _logger.debug(f"signature data: sig64={sig64.hex()}, recid={recid}, digest={digest.hex()}")

    # BOLT #11:
    #
    # A reader MUST use the `n` field to validate the signature instead of
    # performing signature recovery if a valid `n` field is provided.
    if explicit_pubkey is not None:
        if not backend.verify(explicit_pubkey, digest, sig64):
            raise InvoiceValidationError("invalid signature")
        return explicit_pubkey
    try:
        pubkey = backend.recover(digest, sig64, recid)
    except Exception as e:
        raise InvoiceValidationError(f"failed to recover payee pubkey from signature: {e!r}") from e
    if not backend.is_pubkey(pubkey):
        raise InvoiceValidationError("recovered payee pubkey is invalid")
    return pubkey
