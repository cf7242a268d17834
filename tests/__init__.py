import unittest
import threading
import functools

import electrum_ecc as ecc

import lninvoice.logging
from lninvoice import bech32
from lninvoice import constants
from lninvoice.lnaddr import UnsignedRawInvoice
from lninvoice.lnsig import signing_digest
from lninvoice.logging import Logger


lninvoice.logging._configure_stderr_logging(verbosity="*")


class LNInvoiceTestCase(unittest.TestCase, Logger):
    """Base class for our unit tests."""

    TESTNET = False
    REGTEST = False
    # maxDiff = None  # for debugging

    # some unit tests are modifying globals... so we run sequentially:
    _test_lock = threading.Lock()

    def __init__(self, *args, **kwargs):
        Logger.__init__(self)
        unittest.TestCase.__init__(self, *args, **kwargs)

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        assert not (cls.REGTEST and cls.TESTNET), "regtest and testnet are mutually exclusive"
        if cls.REGTEST:
            constants.BitcoinRegtest.set_as_network()
        elif cls.TESTNET:
            constants.BitcoinTestnet.set_as_network()

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        if cls.TESTNET or cls.REGTEST:
            constants.BitcoinMainnet.set_as_network()

    def setUp(self):
        have_lock = self._test_lock.acquire(timeout=0.1)
        if not have_lock:
            # This can happen when trying to run the tests in parallel,
            # or if a prior test raised during `setUp` and never released the lock.
            raise Exception("timed out waiting for test_lock")
        super().setUp()

    def tearDown(self):
        super().tearDown()
        self._test_lock.release()


def as_testnet(func):
    """Function decorator to run a single unit test in testnet mode.

    NOTE: this is inherently sequential; tests running in parallel would break things
    """
    @functools.wraps(func)
    def run_test(*args, **kwargs):
        old_net = constants.net
        try:
            constants.BitcoinTestnet.set_as_network()
            return func(*args, **kwargs)
        finally:
            constants.net = old_net
    return run_test


# test key of the BOLT-11 examples
PRIVKEY = bytes.fromhex('e126f68f7eafcc8b74f54d269fe206be715000f94dac067d1c04a8ca3b2db734')
PUBKEY = bytes.fromhex('03e7156ae33b0a208d0744199163177e909e80176e55d97a2f221ede0f934dd9ad')


def sign_digest(msg32: bytes, privkey: bytes = PRIVKEY) -> bytes:
    """Returns the 65 byte signature as carried in invoices: sig64 + recid."""
    sig = ecc.ECPrivkey(privkey).ecdsa_sign_recoverable(msg32, is_compressed=False)
    return bytes(sig[1:]) + bytes([sig[0] - 27])


def sign_raw_invoice(raw: UnsignedRawInvoice, privkey: bytes = PRIVKEY) -> str:
    return raw.to_bolt11(sign_digest(raw.signing_digest(), privkey))


def sign_data5(hrp: str, data5, privkey: bytes = PRIVKEY) -> str:
    """Signs arbitrary (possibly invalid) invoice data."""
    sig65 = sign_digest(signing_digest(hrp, data5), privkey)
    return bech32.encode(hrp, list(data5) + bech32.convertbits(sig65, 8, 5, False))
