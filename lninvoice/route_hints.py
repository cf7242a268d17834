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

from typing import Optional, Sequence, Tuple

from .lnutil import RouteHint
from .logging import get_logger


_logger = get_logger(__name__)


def merge_route_hints(
        existing_hints: Sequence[RouteHint],
        lsp_hint: Optional[RouteHint],
        include_existing: bool,
) -> Tuple[RouteHint, ...]:
    """Combines the route hints of an invoice with the hint of our LSP.

    The LSP hint takes priority: it always ends up last, and an existing
    hint is dropped entirely if any of its hops starts at a node that also
    appears in the LSP hint. Other existing hints are kept, in order, if
    `include_existing` is set.
    """
    if lsp_hint is None:
        return tuple(existing_hints)
    if not include_existing:
        return (lsp_hint,)
    lsp_node_ids = lsp_hint.src_node_ids()
    merged = []
    for hint in existing_hints:
        conflicts = hint.src_node_ids() & lsp_node_ids
        if conflicts:
            _logger.info(f"dropping route hint that conflicts with LSP hint at nodes {sorted(conflicts)}")
            continue
        merged.append(hint)
    merged.append(lsp_hint)
    return tuple(merged)
