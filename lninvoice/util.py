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
from typing import Optional, Union, Sequence


class UserFacingException(Exception):
    """Exception that contains information intended to be shown to the user."""


class InvoiceError(UserFacingException):
    """Base class of every failure raised by the invoice codec.

    `kind` is the stable name of the failure category; callers that relay
    errors (e.g. the payment service) surface it together with the message.
    """
    kind = 'Generic'

    def __str__(self):
        msg = super().__str__()
        return f"{self.kind}: {msg}" if msg else self.kind


class EmptyInputError(InvoiceError):
    kind = 'EmptyInput'


class MalformedEncodingError(InvoiceError):
    """Checksum failure, wrong group counts, truncated tagged fields..."""
    kind = 'MalformedEncoding'


class InvoiceValidationError(InvoiceError):
    """The invoice is well-formed but semantically unacceptable."""
    kind = 'Validation'


class InvalidNetworkError(InvoiceValidationError):
    kind = 'InvalidNetwork'


class GenericInvoiceError(InvoiceError):
    """Wraps failures of underlying libraries that are not otherwise classified."""
    kind = 'Generic'


def hex_to_bytes(arg: Optional[Union[bytes, str]]) -> Optional[bytes]:
    return arg if isinstance(arg, bytes) else bytes.fromhex(arg) if arg is not None else None


def list_enabled_bits(x: int) -> Sequence[int]:
    """e.g. 77 (0b1001101) --> (0, 2, 3, 6)"""
    binary = bin(x)[2:]
    rev_bin = reversed(binary)
    return tuple(i for i, b in enumerate(rev_bin) if b == '1')


class ShortChannelID(bytes):

    def __repr__(self):
        return f"<ShortChannelID: {format_short_channel_id(self)}>"

    def __str__(self):
        return format_short_channel_id(self)

    @classmethod
    def from_components(cls, block_height: int, tx_pos_in_block: int, output_index: int) -> 'ShortChannelID':
        bh = block_height.to_bytes(3, byteorder='big')
        tpos = tx_pos_in_block.to_bytes(3, byteorder='big')
        oi = output_index.to_bytes(2, byteorder='big')
        return ShortChannelID(bh + tpos + oi)

    @classmethod
    def from_int(cls, value: int) -> 'ShortChannelID':
        if not (0 <= value < 1 << 64):
            raise ValueError(f"short channel id out of range: {value!r}")
        return ShortChannelID(value.to_bytes(8, byteorder='big'))

    @classmethod
    def from_str(cls, scid: str) -> 'ShortChannelID':
        """Parses a formatted scid str, e.g. '643920x356x0'."""
        components = scid.split("x")
        if len(components) != 3:
            raise ValueError(f"failed to parse ShortChannelID: {scid!r}")
        try:
            components = [int(x) for x in components]
        except ValueError:
            raise ValueError(f"failed to parse ShortChannelID: {scid!r}") from None
        return ShortChannelID.from_components(*components)

    @classmethod
    def normalize(cls, data: Union[None, str, bytes, int, 'ShortChannelID']) -> Optional['ShortChannelID']:
        if isinstance(data, ShortChannelID) or data is None:
            return data
        if isinstance(data, int):
            return ShortChannelID.from_int(data)
        if isinstance(data, str):
            if "x" in data:
                return ShortChannelID.from_str(data)
            if len(data) != 16:
                raise ValueError(f"short channel id hex must be 16 chars: {data!r}")
            return ShortChannelID.fromhex(data)
        if isinstance(data, (bytes, bytearray)):
            if len(data) != 8:
                raise ValueError(f"short channel id must be 8 bytes, not {len(data)}")
            return ShortChannelID(data)
        raise TypeError(f"cannot make a ShortChannelID from {type(data)}")

    def to_int(self) -> int:
        return int.from_bytes(self, byteorder='big')

    @property
    def block_height(self) -> int:
        return int.from_bytes(self[:3], byteorder='big')

    @property
    def txpos(self) -> int:
        return int.from_bytes(self[3:6], byteorder='big')

    @property
    def output_index(self) -> int:
        return int.from_bytes(self[6:8], byteorder='big')


def format_short_channel_id(short_channel_id: Optional[bytes]):
    if not short_channel_id:
        return 'None'
    return str(int.from_bytes(short_channel_id[:3], 'big')) \
        + 'x' + str(int.from_bytes(short_channel_id[3:6], 'big')) \
        + 'x' + str(int.from_bytes(short_channel_id[6:], 'big'))
