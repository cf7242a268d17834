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

import re
import time
from typing import Optional, Sequence, Type, Union, Dict, Any, TYPE_CHECKING

import attr

from . import constants
from .constants import AbstractNet
from .lnaddr import lndecode, LnAddr
from .lnsig import SignatureBackend
from .lnutil import RouteHint, Description, DescriptionHash, InvoiceDescription
from .util import EmptyInputError, InvalidNetworkError, hex_to_bytes, list_enabled_bits
from .logging import get_logger

if TYPE_CHECKING:
    from .simple_config import SimpleConfig


_logger = get_logger(__name__)


_LIGHTNING_URI_SCHEME = re.compile(r"^lightning:", re.IGNORECASE)


def _description_from_json(d: Dict[str, Any]) -> Optional[InvoiceDescription]:
    if d.get('description') is not None:
        return Description(d['description'])
    if d.get('description_hash') is not None:
        return DescriptionHash(d['description_hash'])
    return None


@attr.s(frozen=True, kw_only=True)
class LNInvoice:
    """A parsed BOLT11 payment request."""
    bolt11 = attr.ib(type=str)
    network = attr.ib(type=Type[AbstractNet])
    payee_pubkey = attr.ib(type=str)
    payment_hash = attr.ib(type=str)
    invoice_description = attr.ib(type=Optional[InvoiceDescription])
    amount_msat = attr.ib(type=Optional[int])
    timestamp = attr.ib(type=int)
    expiry = attr.ib(type=int)
    routing_hints = attr.ib(type=Sequence[RouteHint], converter=tuple)
    payment_secret = attr.ib(type=bytes, converter=hex_to_bytes, repr=lambda val: val.hex())
    min_final_cltv_expiry_delta = attr.ib(type=int)
    features = attr.ib(type=int, default=0)
    signature = attr.ib(type=Optional[bytes], default=None, repr=False)
    unknown_tags = attr.ib(type=Sequence, converter=tuple, default=(), repr=False)

    @property
    def description(self) -> Optional[str]:
        if isinstance(self.invoice_description, Description):
            return self.invoice_description.text
        return None

    @property
    def description_hash(self) -> Optional[str]:
        if isinstance(self.invoice_description, DescriptionHash):
            return self.invoice_description.hash.hex()
        return None

    def expires_at(self) -> int:
        return self.timestamp + self.expiry

    def is_expired(self, now: Optional[float] = None) -> bool:
        if now is None:
            now = time.time()
        # BOLT-11 does not specify what expiration of '0' means.
        # we treat it as 0 seconds here (instead of never)
        return now > self.expires_at()

    @classmethod
    def from_lnaddr(cls, lnaddr: LnAddr, *, bolt11: str) -> 'LNInvoice':
        return LNInvoice(
            bolt11=bolt11,
            network=lnaddr.net,
            payee_pubkey=lnaddr.pubkey.hex(),
            payment_hash=lnaddr.paymenthash.hex(),
            invoice_description=lnaddr.description,
            amount_msat=lnaddr.amount_msat,
            timestamp=lnaddr.date,
            expiry=lnaddr.get_expiry(),
            routing_hints=lnaddr.route_hints,
            payment_secret=lnaddr.payment_secret,
            min_final_cltv_expiry_delta=lnaddr.get_min_final_cltv_delta(),
            features=lnaddr.features,
            signature=lnaddr.signature,
            unknown_tags=lnaddr.unknown_tags,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'bolt11': self.bolt11,
            'network': self.network.NET_NAME,
            'payee_pubkey': self.payee_pubkey,
            'payment_hash': self.payment_hash,
            'description': self.description,
            'description_hash': self.description_hash,
            'amount_msat': self.amount_msat,
            'timestamp': self.timestamp,
            'expiry': self.expiry,
            'routing_hints': [hint.to_json() for hint in self.routing_hints],
            'payment_secret': self.payment_secret.hex(),
            'min_final_cltv_expiry_delta': self.min_final_cltv_expiry_delta,
            'features': list(list_enabled_bits(self.features)),
        }

    @classmethod
    def from_json(cls, d: Dict[str, Any]) -> 'LNInvoice':
        """Inverse of to_json. Note: no signature is checked here."""
        features = 0
        for bit in d.get('features', []):
            features |= 1 << bit
        return LNInvoice(
            bolt11=d['bolt11'],
            network=constants.net_from_name(d['network']),
            payee_pubkey=d['payee_pubkey'],
            payment_hash=d['payment_hash'],
            invoice_description=_description_from_json(d),
            amount_msat=d.get('amount_msat'),
            timestamp=int(d['timestamp']),
            expiry=int(d['expiry']),
            routing_hints=[RouteHint.from_json(hint) for hint in d.get('routing_hints', [])],
            payment_secret=d['payment_secret'],
            min_final_cltv_expiry_delta=int(d['min_final_cltv_expiry_delta']),
            features=features,
        )


def normalize_bolt11(text: str) -> str:
    """Strips whitespace and the optional 'lightning:' URI scheme.
    Raises EmptyInputError.
    """
    if text is None or not text.strip():
        raise EmptyInputError("bolt11 is an empty string")
    return _LIGHTNING_URI_SCHEME.sub("", text.strip()).strip()


def parse_invoice(
        bolt11: str,
        *,
        config: 'SimpleConfig' = None,
        backend: SignatureBackend = None,
) -> LNInvoice:
    """Parse a BOLT11 payment request and return a structure containing the parsed fields.

    Raises EmptyInputError, MalformedEncodingError or InvoiceValidationError.
    """
    text = normalize_bolt11(bolt11)
    if not text:
        raise EmptyInputError("bolt11 is an empty string")
    strict = config.BOLT11_STRICT_DESCRIPTION if config is not None else False
    lnaddr = lndecode(text, strict_description=strict, backend=backend)
    invoice = LNInvoice.from_lnaddr(lnaddr, bolt11=text)
    _logger.debug(
        f"parsed invoice: net={invoice.network.NET_NAME} payment_hash={invoice.payment_hash} "
        f"amount_msat={invoice.amount_msat} num_route_hints={len(invoice.routing_hints)}")
    return invoice


def validate_network(
        invoice: LNInvoice,
        network: Union[None, str, Type[AbstractNet]] = None,
        *,
        config: 'SimpleConfig' = None,
) -> None:
    """Checks that the invoice belongs to `network`.

    `network` is a network class or its name. If omitted, the network
    selected in `config` is used, or else the process-wide default.
    Raises InvalidNetworkError.
    """
    if network is None:
        network = config.get_selected_chain() if config is not None else constants.net
    elif isinstance(network, str):
        try:
            network = constants.net_from_name(network)
        except KeyError:
            raise InvalidNetworkError(f"Unknown network {network!r}") from None
    if invoice.network is not network:
        raise InvalidNetworkError(
            f"Invoice network does not match config: "
            f"invoice is for {invoice.network.NET_NAME}, expected {network.NET_NAME}")
