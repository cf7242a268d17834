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

from typing import Optional, Union, Sequence, Dict, Any, Iterator

import attr

from .util import ShortChannelID, hex_to_bytes


# BOLT #11:
#    * `pubkey` (264 bits)
#    * `short_channel_id` (64 bits)
#    * `fee_base_msat` (32 bits, big-endian)
#    * `fee_proportional_millionths` (32 bits, big-endian)
#    * `cltv_expiry_delta` (16 bits, big-endian)
ROUTE_HINT_HOP_LEN = 33 + 8 + 4 + 4 + 2


def _node_id_to_hex(arg: Union[str, bytes]) -> str:
    if isinstance(arg, (bytes, bytearray)):
        return bytes(arg).hex()
    return arg.lower()


@attr.s(frozen=True, kw_only=True)
class RouteHintHop:
    """One private channel of a route hint, described from the payer's side:
    `src_node_id` is the node that forwards over `short_channel_id`.
    """
    src_node_id = attr.ib(type=str, converter=_node_id_to_hex)
    short_channel_id = attr.ib(type=int)
    fees_base_msat = attr.ib(type=int)
    fees_proportional_millionths = attr.ib(type=int)
    cltv_expiry_delta = attr.ib(type=int)
    # not part of the BOLT11 wire format; only carried along for callers
    htlc_minimum_msat = attr.ib(type=Optional[int], default=None)
    htlc_maximum_msat = attr.ib(type=Optional[int], default=None)

    @property
    def scid(self) -> ShortChannelID:
        return ShortChannelID.from_int(self.short_channel_id)

    def node_id_bytes(self) -> bytes:
        return bytes.fromhex(self.src_node_id)

    def to_bytes(self) -> bytes:
        """Serializes into the 51 byte `r` field record.
        Raises ValueError or OverflowError if a value does not fit its field.
        """
        pubkey = self.node_id_bytes()
        if len(pubkey) != 33:
            raise ValueError(f"src_node_id must be 33 bytes, not {len(pubkey)}")
        record = bytearray()
        record += pubkey
        record += int.to_bytes(self.short_channel_id, length=8, byteorder="big", signed=False)
        record += int.to_bytes(self.fees_base_msat, length=4, byteorder="big", signed=False)
        record += int.to_bytes(self.fees_proportional_millionths, length=4, byteorder="big", signed=False)
        record += int.to_bytes(self.cltv_expiry_delta, length=2, byteorder="big", signed=False)
        return bytes(record)

    @classmethod
    def from_bytes(cls, record: bytes) -> 'RouteHintHop':
        assert len(record) == ROUTE_HINT_HOP_LEN, len(record)
        return RouteHintHop(
            src_node_id=record[0:33],
            short_channel_id=int.from_bytes(record[33:41], byteorder="big"),
            fees_base_msat=int.from_bytes(record[41:45], byteorder="big"),
            fees_proportional_millionths=int.from_bytes(record[45:49], byteorder="big"),
            cltv_expiry_delta=int.from_bytes(record[49:51], byteorder="big"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'src_node_id': self.src_node_id,
            'short_channel_id': self.short_channel_id,
            'short_channel_id_str': str(self.scid),
            'fees_base_msat': self.fees_base_msat,
            'fees_proportional_millionths': self.fees_proportional_millionths,
            'cltv_expiry_delta': self.cltv_expiry_delta,
            'htlc_minimum_msat': self.htlc_minimum_msat,
            'htlc_maximum_msat': self.htlc_maximum_msat,
        }

    @classmethod
    def from_json(cls, d: Dict[str, Any]) -> 'RouteHintHop':
        return RouteHintHop(
            src_node_id=d['src_node_id'],
            short_channel_id=ShortChannelID.normalize(d['short_channel_id']).to_int(),
            fees_base_msat=int(d['fees_base_msat']),
            fees_proportional_millionths=int(d['fees_proportional_millionths']),
            cltv_expiry_delta=int(d['cltv_expiry_delta']),
            htlc_minimum_msat=d.get('htlc_minimum_msat'),
            htlc_maximum_msat=d.get('htlc_maximum_msat'),
        )


@attr.s(frozen=True)
class RouteHint:
    """An alternate path segment towards the payee. Hop order matters."""
    hops = attr.ib(type=Sequence[RouteHintHop], converter=tuple)

    def __iter__(self) -> Iterator[RouteHintHop]:
        return iter(self.hops)

    def __len__(self) -> int:
        return len(self.hops)

    def src_node_ids(self) -> set:
        return {hop.src_node_id for hop in self.hops}

    def to_bytes(self) -> bytes:
        return b"".join(hop.to_bytes() for hop in self.hops)

    @classmethod
    def from_bytes(cls, data: bytes) -> 'RouteHint':
        assert len(data) % ROUTE_HINT_HOP_LEN == 0, len(data)
        return RouteHint([
            RouteHintHop.from_bytes(data[i:i + ROUTE_HINT_HOP_LEN])
            for i in range(0, len(data), ROUTE_HINT_HOP_LEN)])

    def to_json(self) -> Dict[str, Any]:
        return {'hops': [hop.to_json() for hop in self.hops]}

    @classmethod
    def from_json(cls, d: Dict[str, Any]) -> 'RouteHint':
        return RouteHint([RouteHintHop.from_json(hop) for hop in d['hops']])


@attr.s(frozen=True)
class Description:
    """Description carried in the clear, in a `d` field."""
    text = attr.ib(type=str)


def _check_hash_len(instance, attribute, value):
    if len(value) != 32:
        raise ValueError(f"{attribute.name} must be 32 bytes, not {len(value)}")


@attr.s(frozen=True)
class DescriptionHash:
    """SHA256 of a description that is communicated out of band, in an `h` field."""
    hash = attr.ib(type=bytes, converter=hex_to_bytes, validator=_check_hash_len)


InvoiceDescription = Union[Description, DescriptionHash]
