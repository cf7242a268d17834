#! /usr/bin/env python3
# This was forked from https://github.com/rustyrussell/lightning-payencode/tree/acc16ec13a3fa1dc16c07af6ec67c261bd8aff23

import re
from decimal import Decimal
from functools import cached_property
from typing import Optional, Type, Sequence, List, Tuple

import attr

from . import bech32
from . import constants
from .bech32 import CHARSET, CHARSET_INVERSE, convertbits
from .constants import AbstractNet
from .lnsig import SIGNATURE_LEN_BYTES, SIGNATURE_LEN_DATA5, PUBKEY_LEN_BYTES, signing_digest, check_signature
from .lnsig import SignatureBackend, default_backend
from .lnutil import RouteHint, ROUTE_HINT_HOP_LEN, Description, DescriptionHash, InvoiceDescription
from .util import MalformedEncodingError, InvoiceValidationError
from .logging import get_logger


_logger = get_logger(__name__)


COIN = 100_000_000
TOTAL_COIN_SUPPLY_LIMIT_IN_BTC = 21_000_000

TIMESTAMP_LEN_DATA5 = 7  # 35 bits
DEFAULT_EXPIRY = 3600
DEFAULT_MIN_FINAL_CLTV_EXPIRY_DELTA = 18
MAX_DESCRIPTION_LEN_BYTES = 639  # 1023 data5 values


class LnEncodeException(Exception): pass


# BOLT #11:
#
# A writer MUST encode `amount` as a positive decimal integer with no
# leading zeroes, SHOULD use the shortest representation possible.
def shorten_amount(amount_msat: int) -> str:
    """ Given an amount in millisatoshi, shorten it
    """
    # Convert to pico initially
    amount = int(amount_msat) * 10
    units = ['p', 'n', 'u', 'm']
    for unit in units:
        if amount % 1000 == 0:
            amount //= 1000
        else:
            break
    else:
        unit = ''
    return str(amount) + unit


def unshorten_amount(amount: str) -> int:
    """ Given a shortened amount, return it in millisatoshi.
    Raises InvoiceValidationError.
    """
    # BOLT #11:
    # The following `multiplier` letters are defined:
    #
    #* `m` (milli): multiply by 0.001
    #* `u` (micro): multiply by 0.000001
    #* `n` (nano): multiply by 0.000000001
    #* `p` (pico): multiply by 0.000000000001
    units = {
        'p': 10**12,
        'n': 10**9,
        'u': 10**6,
        'm': 10**3,
    }
    # BOLT #11:
    # A reader SHOULD fail if `amount` contains a non-digit, or is followed by
    # anything except a `multiplier` in the table above.
    if not re.fullmatch("[0-9]+[pnum]?", amount):
        raise InvoiceValidationError("Invalid amount '{}'".format(amount))
    unit = amount[-1]
    if unit in units.keys():
        amount_btc = Decimal(amount[:-1]) / units[unit]
    else:
        amount_btc = Decimal(amount)
    if not (0 <= amount_btc <= TOTAL_COIN_SUPPLY_LIMIT_IN_BTC):
        raise InvoiceValidationError(f"amount is out-of-bounds: {amount!r}")
    amount_msat = amount_btc * COIN * 1000
    if amount_msat % 1:
        # max resolution is millisatoshi
        raise InvoiceValidationError(f"Invalid amount '{amount}': fractional millisatoshi")
    return int(amount_msat)


def parse_hrp(hrp: str) -> Tuple[Type[AbstractNet], Optional[int]]:
    """Returns (network, amount_msat) of a BOLT11 human readable part.
    Raises InvoiceValidationError.
    """
    # BOLT #11:
    #
    # A reader MUST fail if it does not understand the `prefix`.
    if not hrp.startswith('ln'):
        raise InvoiceValidationError("Does not start with ln")
    tail = hrp[2:]
    for net in constants.nets_matching_bolt11_hrp(tail):
        amountstr = tail[len(net.BOLT11_HRP):]
        # BOLT #11:
        #
        # A reader SHOULD indicate if amount is unspecified, otherwise it MUST
        # multiply `amount` by the `multiplier` value (if any) to derive the
        # amount required for payment.
        if amountstr == '':
            return net, None
        if amountstr[0] in '0123456789':
            return net, unshorten_amount(amountstr)
    raise InvoiceValidationError(f"Unknown network in invoice prefix {hrp!r}")


def encode_hrp(net: Type[AbstractNet], amount_msat: Optional[int]) -> str:
    if amount_msat is None:
        return 'ln' + net.BOLT11_HRP
    return 'ln' + net.BOLT11_HRP + shorten_amount(amount_msat)


def tagged5(char: str, data5: Sequence[int]) -> List[int]:
    if len(data5) >= (1 << 10):
        raise LnEncodeException(f"'{char}' field too long: {len(data5)} values")
    return [CHARSET_INVERSE[char], len(data5) >> 5, len(data5) & 31] + list(data5)


def tagged8(char: str, data8: bytes) -> List[int]:
    return tagged5(char, convertbits(data8, 8, 5))


def int_to_data5(val: int, *, bit_len: int = None) -> List[int]:
    """Represent big-endian number with as many 0-31 values as it takes.
    If `bit_len` is set, use exactly bit_len//5 values (left-padded with zeroes).
    """
    if val < 0:
        raise LnEncodeException(f"cannot encode negative value {val}")
    if bit_len is not None:
        assert bit_len % 5 == 0, bit_len
        if val.bit_length() > bit_len:
            raise LnEncodeException(f"{val=} too big for {bit_len=!r}")
    ret = []
    while val != 0:
        ret.append(val % 32)
        val //= 32
    if bit_len is not None:
        ret.extend([0] * (bit_len // 5 - len(ret)))
    ret.reverse()
    return ret


def int_from_data5(data5: Sequence[int]) -> int:
    total = 0
    for v in data5:
        total = 32 * total + v
    return total


def data5_to_bytes(data5: Sequence[int]) -> bytes:
    """Regroups into bytes, dropping the zero padding bits at the end.
    Raises MalformedEncodingError if the padding is not made of zero bits.
    """
    data8 = convertbits(data5, 5, 8, False)
    if data8 is None:
        raise MalformedEncodingError("Invalid padding in tagged field")
    return bytes(data8)


class TaggedFieldReader:
    """Cursor over the data part of an invoice, between the timestamp and the signature."""

    def __init__(self, data5: Sequence[int], *, start: int, end: int):
        assert 0 <= start <= end <= len(data5)
        self._data5 = data5
        self._pos = start
        self._end = end

    def remaining(self) -> int:
        return self._end - self._pos

    def read(self, num_values: int) -> Sequence[int]:
        if num_values > self.remaining():
            raise MalformedEncodingError(f"Truncated data: expected {num_values} values")
        ret = self._data5[self._pos:self._pos + num_values]
        self._pos += num_values
        return ret

    def read_tagged(self) -> Tuple[str, Sequence[int]]:
        """Pull out tagged data: returns tag, tagged data."""
        if self.remaining() < 3:
            raise MalformedEncodingError("Truncated field")
        tag_type, len_hi, len_lo = self.read(3)
        length = len_hi * 32 + len_lo
        if length > self.remaining():
            raise MalformedEncodingError(
                "Truncated {} field: expected {} values".format(CHARSET[tag_type], length))
        return CHARSET[tag_type], self.read(length)


@attr.s(frozen=True, kw_only=True)
class LnAddr:
    """A decoded and signature-checked BOLT11 invoice, close to the wire format.

    `expiry` and `min_final_cltv_expiry_delta` are None if their field was absent.
    `description` is None unless exactly one `d` or `h` field was present.
    """
    hrp = attr.ib(type=str)
    net = attr.ib(type=Type[AbstractNet])
    amount_msat = attr.ib(type=Optional[int])
    date = attr.ib(type=int)
    paymenthash = attr.ib(type=bytes, repr=lambda val: val.hex())
    payment_secret = attr.ib(type=bytes, repr=lambda val: val.hex())
    description = attr.ib(type=Optional[InvoiceDescription])
    expiry = attr.ib(type=Optional[int])
    min_final_cltv_expiry_delta = attr.ib(type=Optional[int])
    route_hints = attr.ib(type=Sequence[RouteHint], converter=tuple)
    features = attr.ib(type=int)
    explicit_pubkey = attr.ib(type=Optional[bytes], repr=lambda val: val.hex() if val else None)
    pubkey = attr.ib(type=bytes, repr=lambda val: val.hex())
    signature = attr.ib(type=bytes, repr=lambda val: val.hex())
    unknown_tags = attr.ib(type=Sequence[Tuple[str, Tuple[int, ...]]], converter=tuple)

    def get_expiry(self) -> int:
        return DEFAULT_EXPIRY if self.expiry is None else self.expiry

    def get_min_final_cltv_delta(self) -> int:
        if self.min_final_cltv_expiry_delta is None:
            return DEFAULT_MIN_FINAL_CLTV_EXPIRY_DELTA
        return self.min_final_cltv_expiry_delta


def lndecode(
        invoice: str,
        *,
        strict_description: bool = False,
        backend: SignatureBackend = None,
) -> LnAddr:
    """Parses a string into an LnAddr object.
    Raises MalformedEncodingError or InvoiceValidationError.
    """
    if backend is None:
        backend = default_backend
    hrp, data5 = bech32.decode(invoice)
    net, amount_msat = parse_hrp(hrp)

    # Final signature 65 bytes, split it off.
    if len(data5) < TIMESTAMP_LEN_DATA5 + SIGNATURE_LEN_DATA5:
        raise MalformedEncodingError("Too short to contain timestamp and signature")
    sig_start = len(data5) - SIGNATURE_LEN_DATA5
    date = int_from_data5(data5[:TIMESTAMP_LEN_DATA5])

    paymenthash = None
    payment_secret = None
    explicit_pubkey = None
    descriptions = []  # type: List[InvoiceDescription]
    expiry = None
    min_final_cltv = None
    route_hints = []
    features = 0
    unknown_tags = []

    reader = TaggedFieldReader(data5, start=TIMESTAMP_LEN_DATA5, end=sig_start)
    while reader.remaining():
        tag, tagdata = reader.read_tagged()

        # BOLT #11:
        #
        # A reader MUST skip over unknown fields, an `f` field with unknown
        # `version`, or a `p`, `h`, `s` or `n` field which does not have
        # `data_length` 52, 52, 52 or 53 respectively.
        data_length = len(tagdata)

        if tag == 'r':
            # BOLT #11:
            #
            # * `r` (3): `data_length` variable.  One or more entries
            # containing extra routing information for a private route;
            # there may be more than one `r` field, too.
            route = data5_to_bytes(tagdata)
            if not route or len(route) % ROUTE_HINT_HOP_LEN != 0:
                raise MalformedEncodingError(
                    f"Truncated 'r' field: {len(route)} bytes is not a multiple of {ROUTE_HINT_HOP_LEN}")
            route_hints.append(RouteHint.from_bytes(route))

        elif tag == 'd':
            try:
                text = data5_to_bytes(tagdata).decode('utf-8')
            except UnicodeDecodeError as e:
                raise MalformedEncodingError(f"'d' field is not valid utf-8: {e}") from e
            descriptions.append(Description(text))

        elif tag == 'h':
            if data_length != 52:
                unknown_tags.append((tag, tuple(tagdata)))
                continue
            descriptions.append(DescriptionHash(data5_to_bytes(tagdata)))

        elif tag == 'x':
            if expiry is None:
                expiry = int_from_data5(tagdata)

        elif tag == 'c':
            if min_final_cltv is None:
                min_final_cltv = int_from_data5(tagdata)

        elif tag == 'p':
            if data_length != 52:
                unknown_tags.append((tag, tuple(tagdata)))
                continue
            if paymenthash is None:
                paymenthash = data5_to_bytes(tagdata)

        elif tag == 's':
            if data_length != 52:
                unknown_tags.append((tag, tuple(tagdata)))
                continue
            if payment_secret is None:
                payment_secret = data5_to_bytes(tagdata)

        elif tag == 'n':
            if data_length != 53:
                unknown_tags.append((tag, tuple(tagdata)))
                continue
            pubkeybytes = data5_to_bytes(tagdata)
            if not backend.is_pubkey(pubkeybytes):
                raise InvoiceValidationError(f"invalid payee pubkey in 'n' field: {pubkeybytes.hex()}")
            if explicit_pubkey is None:
                explicit_pubkey = pubkeybytes

        elif tag == '9':
            # note: feature bits are kept as-is and not interpreted
            features = int_from_data5(tagdata)

        else:
            unknown_tags.append((tag, tuple(tagdata)))

    if unknown_tags:
        _logger.debug(f"skipped unknown tagged fields: {[t for t, _ in unknown_tags]}")

    if paymenthash is None:
        raise InvoiceValidationError("missing mandatory field: payment hash ('p')")
    if payment_secret is None:
        raise InvoiceValidationError("missing mandatory field: payment secret ('s')")

    # BOLT #11:
    #
    # A writer MUST include either a `d` or `h` field, and MUST NOT include
    # both.
    if len(descriptions) == 1:
        description = descriptions[0]
    else:
        if strict_description:
            raise InvoiceValidationError(
                f"invoice must contain exactly one 'd' or 'h' field, found {len(descriptions)}")
        _logger.debug(f"invoice has {len(descriptions)} description fields, leaving description unset")
        description = None

    # BOLT #11:
    #
    # A reader MUST check that the `signature` is valid (see the `n` tagged
    # field specified below).
    sigdecoded = data5_to_bytes(data5[sig_start:])
    assert len(sigdecoded) == SIGNATURE_LEN_BYTES, len(sigdecoded)
    pubkey = check_signature(
        hrp, data5[:sig_start], sigdecoded, explicit_pubkey=explicit_pubkey, backend=backend)

    return LnAddr(
        hrp=hrp,
        net=net,
        amount_msat=amount_msat,
        date=date,
        paymenthash=paymenthash,
        payment_secret=payment_secret,
        description=description,
        expiry=expiry,
        min_final_cltv_expiry_delta=min_final_cltv,
        route_hints=route_hints,
        features=features,
        explicit_pubkey=explicit_pubkey,
        pubkey=pubkey,
        signature=sigdecoded,
        unknown_tags=unknown_tags,
    )


@attr.s(frozen=True, kw_only=True)
class UnsignedRawInvoice:
    """An invoice with every field set but without signature.

    The owner of the payee key signs `signing_digest()`, and `to_bolt11()`
    then assembles the final payment request.
    """
    net = attr.ib(type=Type[AbstractNet])
    amount_msat = attr.ib(type=Optional[int])
    date = attr.ib(type=int)
    paymenthash = attr.ib(type=bytes, repr=lambda val: val.hex())
    payment_secret = attr.ib(type=bytes, repr=lambda val: val.hex())
    description = attr.ib(type=InvoiceDescription)
    expiry = attr.ib(type=Optional[int], default=None)
    min_final_cltv_expiry_delta = attr.ib(type=Optional[int], default=None)
    route_hints = attr.ib(type=Sequence[RouteHint], converter=tuple, default=())
    features = attr.ib(type=int, default=0)
    payee_pubkey = attr.ib(type=Optional[bytes], default=None)

    @property
    def hrp(self) -> str:
        return encode_hrp(self.net, self.amount_msat)

    @cached_property
    def data5(self) -> Tuple[int, ...]:
        return tuple(encode_tagged_fields(self))

    def signing_digest(self) -> bytes:
        return signing_digest(self.hrp, self.data5)

    def to_bolt11(self, sig65: bytes) -> str:
        """`sig65` is the 64 byte compact signature followed by the recovery id."""
        if len(sig65) != SIGNATURE_LEN_BYTES:
            raise ValueError(f"signature must be {SIGNATURE_LEN_BYTES} bytes, not {len(sig65)}")
        if not (0 <= sig65[64] <= 3):
            raise ValueError(f"invalid recovery id {sig65[64]}")
        sig5 = convertbits(sig65, 8, 5, False)
        assert len(sig5) == SIGNATURE_LEN_DATA5, len(sig5)
        return bech32.encode(self.hrp, list(self.data5) + sig5)


def encode_tagged_fields(raw: UnsignedRawInvoice) -> List[int]:
    """Timestamp followed by the tagged fields, as 5-bit values.
    Raises LnEncodeException.
    """
    if raw.amount_msat is not None and raw.amount_msat <= 0:
        raise LnEncodeException(f"amount must be positive, not {raw.amount_msat}")
    if len(raw.paymenthash) != 32:
        raise LnEncodeException("payment hash must be 32 bytes")
    if len(raw.payment_secret) != 32:
        raise LnEncodeException("payment secret must be 32 bytes")

    # Start with the timestamp
    data5 = int_to_data5(raw.date, bit_len=35)

    data5 += tagged8('p', raw.paymenthash)
    data5 += tagged8('s', raw.payment_secret)

    if isinstance(raw.description, Description):
        desc = raw.description.text.encode('utf-8')
        if len(desc) > MAX_DESCRIPTION_LEN_BYTES:
            raise LnEncodeException(f"description too long: {len(desc)} bytes")
        data5 += tagged8('d', desc)
    elif isinstance(raw.description, DescriptionHash):
        data5 += tagged8('h', raw.description.hash)
    else:
        # BOLT #11:
        #
        # A writer MUST include either a `d` or `h` field, and MUST NOT include
        # both.
        raise LnEncodeException("Must include either 'd' or 'h'")

    if raw.payee_pubkey is not None:
        if len(raw.payee_pubkey) != PUBKEY_LEN_BYTES:
            raise LnEncodeException("payee pubkey must be 33 bytes")
        data5 += tagged8('n', raw.payee_pubkey)
    if raw.expiry is not None:
        data5 += tagged5('x', int_to_data5(raw.expiry))
    if raw.min_final_cltv_expiry_delta is not None:
        data5 += tagged5('c', int_to_data5(raw.min_final_cltv_expiry_delta))

    for route_hint in raw.route_hints:
        if not route_hint.hops:
            raise LnEncodeException("route hint without hops")
        try:
            route = route_hint.to_bytes()
        except (ValueError, OverflowError) as e:
            raise LnEncodeException(f"cannot encode route hint: {e}") from e
        data5 += tagged8('r', route)

    if raw.features:
        data5 += tagged5('9', int_to_data5(raw.features))

    return data5
