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

from typing import Optional, Sequence, TYPE_CHECKING

from .invoice import LNInvoice, parse_invoice
from .lnaddr import UnsignedRawInvoice, LnEncodeException
from .lnsig import SignatureBackend, default_backend
from .lnutil import RouteHint
from .route_hints import merge_route_hints
from .util import GenericInvoiceError
from .logging import get_logger

if TYPE_CHECKING:
    from .simple_config import SimpleConfig


_logger = get_logger(__name__)


def reconstruct(
        original: LNInvoice,
        new_amount_msat: int,
        merged_hints: Sequence[RouteHint],
        *,
        backend: SignatureBackend = None,
) -> UnsignedRawInvoice:
    """Builds a new, unsigned invoice from `original`, with another amount
    and another set of route hints.

    Everything else (network, description, payment hash and secret,
    timestamp, expiry, min_final_cltv_expiry_delta, feature bits) is copied
    as-is. We do not hold the payee key, so the result must be signed by
    the node that does.
    Raises GenericInvoiceError.
    """
    if backend is None:
        backend = default_backend
    if original.invoice_description is None:
        raise GenericInvoiceError("original invoice has no usable description or description hash")
    if not isinstance(new_amount_msat, int) or new_amount_msat <= 0:
        raise GenericInvoiceError(f"invalid amount: {new_amount_msat!r} msat")
    for hint in merged_hints:
        for hop in hint.hops:
            try:
                node_id = bytes.fromhex(hop.src_node_id)
            except ValueError as e:
                raise GenericInvoiceError(f"route hint hop has malformed src_node_id {hop.src_node_id!r}") from e
            if not backend.is_pubkey(node_id):
                raise GenericInvoiceError(f"route hint hop src_node_id is not a valid public key: {hop.src_node_id}")
    raw = UnsignedRawInvoice(
        net=original.network,
        amount_msat=new_amount_msat,
        date=original.timestamp,
        paymenthash=bytes.fromhex(original.payment_hash),
        payment_secret=original.payment_secret,
        description=original.invoice_description,
        expiry=original.expiry,
        min_final_cltv_expiry_delta=original.min_final_cltv_expiry_delta,
        route_hints=merged_hints,
        features=original.features,
    )
    try:
        raw.data5  # encoded once here, then cached
    except LnEncodeException as e:
        raise GenericInvoiceError(f"cannot re-encode invoice: {e}") from e
    return raw


def merge_and_reconstruct(
        bolt11: str,
        include_existing: bool,
        lsp_hint: Optional[RouteHint],
        new_amount_msat: int,
        *,
        config: 'SimpleConfig' = None,
        backend: SignatureBackend = None,
) -> UnsignedRawInvoice:
    """Adapts an invoice so that it can be paid through our LSP.

    Raises EmptyInputError, MalformedEncodingError, InvoiceValidationError
    or GenericInvoiceError.
    """
    original = parse_invoice(bolt11, config=config, backend=backend)
    merged = merge_route_hints(original.routing_hints, lsp_hint, include_existing)
    _logger.debug(
        f"merged route hints for {original.payment_hash}: "
        f"{len(original.routing_hints)} existing -> {len(merged)} "
        f"(lsp_hint={'yes' if lsp_hint is not None else 'no'}, include_existing={include_existing})")
    return reconstruct(original, new_amount_msat, merged, backend=backend)
