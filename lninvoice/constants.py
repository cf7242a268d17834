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

from typing import Sequence, Type


def all_subclasses(cls) -> set:
    """Return all (transitive) subclasses of cls."""
    res = set(cls.__subclasses__())
    for sub in res.copy():
        res |= all_subclasses(sub)
    return res


class AbstractNet:

    NET_NAME: str
    TESTNET: bool
    BOLT11_HRP: str

    @classmethod
    def set_as_network(cls) -> None:
        global net
        net = cls

class BitcoinMainnet(AbstractNet):

    NET_NAME = "mainnet"
    TESTNET = False
    BOLT11_HRP = "bc"


class BitcoinTestnet(AbstractNet):

    NET_NAME = "testnet"
    TESTNET = True
    BOLT11_HRP = "tb"


class BitcoinRegtest(BitcoinTestnet):

    NET_NAME = "regtest"
    BOLT11_HRP = "bcrt"


class BitcoinSignet(BitcoinTestnet):

    NET_NAME = "signet"
    BOLT11_HRP = "tbs"


NETS_LIST = tuple(all_subclasses(AbstractNet))  # type: Sequence[Type[AbstractNet]]

assert len(NETS_LIST) == len(set([chain.NET_NAME for chain in NETS_LIST])), "NET_NAME must be unique for each concrete AbstractNet"
assert len(NETS_LIST) == len(set([chain.BOLT11_HRP for chain in NETS_LIST])), "BOLT11_HRP must be unique for each concrete AbstractNet"

# longest first: 'tbs' must be tried before 'tb', 'bcrt' before 'bc'
_NETS_BY_HRP_LENGTH = tuple(sorted(NETS_LIST, key=lambda chain: len(chain.BOLT11_HRP), reverse=True))


def net_from_name(name: str) -> Type[AbstractNet]:
    """Raises KeyError for unknown names."""
    for chain in NETS_LIST:
        if chain.NET_NAME == name:
            return chain
    raise KeyError(name)


def nets_matching_bolt11_hrp(hrp_tail: str) -> Sequence[Type[AbstractNet]]:
    """Networks whose BOLT11 prefix starts `hrp_tail` (the HRP minus 'ln'),
    longest prefix first.
    """
    return [chain for chain in _NETS_BY_HRP_LENGTH if hrp_tail.startswith(chain.BOLT11_HRP)]


# don't import net directly, import the module instead (so that net is singleton)
net = BitcoinMainnet  # type: Type[AbstractNet]
