from .version import LNINVOICE_VERSION
__version__ = LNINVOICE_VERSION

from .util import (
    InvoiceError, EmptyInputError, MalformedEncodingError, InvoiceValidationError,
    InvalidNetworkError, GenericInvoiceError,
)
from .constants import BitcoinMainnet, BitcoinTestnet, BitcoinSignet, BitcoinRegtest
from .lnutil import RouteHint, RouteHintHop, Description, DescriptionHash
from .lnaddr import UnsignedRawInvoice
from .invoice import LNInvoice, parse_invoice, validate_network
from .route_hints import merge_route_hints
from .reconstruct import reconstruct, merge_and_reconstruct
from .simple_config import SimpleConfig
