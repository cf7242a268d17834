from lninvoice import bech32
from lninvoice import constants
from lninvoice.bech32 import convertbits
from lninvoice.invoice import LNInvoice, parse_invoice, validate_network, normalize_bolt11
from lninvoice.lnaddr import int_to_data5, tagged8
from lninvoice.lnsig import PUBKEY_LEN_BYTES, default_backend
from lninvoice.simple_config import SimpleConfig
from lninvoice.util import (EmptyInputError, MalformedEncodingError, InvoiceValidationError,
                            InvalidNetworkError, InvoiceError)

from . import LNInvoiceTestCase, as_testnet, PUBKEY, sign_data5
from .test_bolt11 import INVOICE_ROUTE_HINT, INVOICE_COFFEE, RHASH, PAYMENT_SECRET, TIMESTAMP


MAINNET_INVOICE = "lnbc110n1p38q3gtpp5ypz09jrd8p993snjwnm68cph4ftwp22le34xd4r8ftspwshxhmnsdqqxqyjw5qcqpxsp5htlg8ydpywvsa7h3u4hdn77ehs4z4e844em0apjyvmqfkzqhhd2q9qgsqqqyssqszpxzxt9uuqzymr7zxcdccj5g69s8q7zzjs7sgxn9ejhnvdh6gqjcy22mss2yexunagm5r2gqczh8k24cwrqml3njskm548aruhpwssq9nvrvz"
TESTNET_INVOICE = "lntb15u1pj53l9tpp5p7kjsjcv3eqa39upytmj6k7ac8rqvdffyqr4um98pq5n4ppwxvnsdpzxysy2umswfjhxum0yppk76twypgxzmnwvyxqrrsscqp79qy9qsqsp53xw4x5ezpzvnheff9mrt0ju72u5a5dnxyh4rq6gtweufv9650d4qwqj3ds5xfg4pxc9h7a2g43fmntr4tt322jzujsycvuvury50u994kzr8539qf658hrp07hyz634qpvkeh378wnvf7lddp2x7yfgyk9cp7f7937"


def _payment_hash_from_raw_fields(bolt11: str) -> str:
    # both test invoices start with the 'p' field right after the timestamp
    _, data = bech32.decode(bolt11)
    assert data[7:10] == [1, 1, 20]  # 'p', length 52
    return bytes(convertbits(data[10:62], 5, 8, False)).hex()


class TestParseInvoice(LNInvoiceTestCase):

    def test_parse_mainnet_invoice(self):
        invoice = parse_invoice(MAINNET_INVOICE)
        self.assertIs(constants.BitcoinMainnet, invoice.network)
        self.assertEqual(11_000, invoice.amount_msat)
        self.assertEqual(64, len(invoice.payment_hash))
        self.assertEqual(_payment_hash_from_raw_fields(MAINNET_INVOICE), invoice.payment_hash)
        self.assertEqual(2 * PUBKEY_LEN_BYTES, len(invoice.payee_pubkey))
        self.assertTrue(default_backend.is_pubkey(bytes.fromhex(invoice.payee_pubkey)))
        self.assertEqual(1651524875, invoice.timestamp)
        self.assertEqual(604800, invoice.expiry)
        self.assertEqual(6, invoice.min_final_cltv_expiry_delta)
        self.assertEqual('', invoice.description)
        self.assertIsNone(invoice.description_hash)
        self.assertEqual(32, len(invoice.payment_secret))
        self.assertEqual((), invoice.routing_hints)
        self.assertEqual(MAINNET_INVOICE, invoice.bolt11)

    def test_parse_testnet_invoice(self):
        invoice = parse_invoice(TESTNET_INVOICE)
        self.assertIs(constants.BitcoinTestnet, invoice.network)
        self.assertEqual(1_500_000, invoice.amount_msat)
        self.assertEqual(_payment_hash_from_raw_fields(TESTNET_INVOICE), invoice.payment_hash)
        self.assertEqual(3600, invoice.expiry)
        self.assertEqual(30, invoice.min_final_cltv_expiry_delta)

    def test_parse_route_hints_and_description_hash(self):
        invoice = parse_invoice(INVOICE_ROUTE_HINT)
        self.assertEqual(PUBKEY.hex(), invoice.payee_pubkey)
        self.assertEqual(RHASH.hex(), invoice.payment_hash)
        self.assertEqual(PAYMENT_SECRET, invoice.payment_secret)
        self.assertEqual(TIMESTAMP, invoice.timestamp)
        self.assertIsNone(invoice.description)
        self.assertEqual(64, len(invoice.description_hash))
        self.assertEqual(1, len(invoice.routing_hints))
        self.assertEqual(2, len(invoice.routing_hints[0]))
        self.assertEqual(18, invoice.min_final_cltv_expiry_delta)

    def test_parse_is_idempotent(self):
        self.assertEqual(parse_invoice(MAINNET_INVOICE), parse_invoice(MAINNET_INVOICE))

    def test_lightning_prefix(self):
        expected = parse_invoice(MAINNET_INVOICE)
        for text in ("lightning:" + MAINNET_INVOICE,
                     "LIGHTNING:" + MAINNET_INVOICE,
                     "LiGhTnInG:" + MAINNET_INVOICE,
                     "  lightning:" + MAINNET_INVOICE + "\n"):
            self.assertEqual(expected, parse_invoice(text))

    def test_normalize_bolt11(self):
        self.assertEqual("lnbc1", normalize_bolt11(" lightning:lnbc1 "))
        self.assertEqual("LNBC1", normalize_bolt11("LIGHTNING:LNBC1"))
        # only a leading scheme is stripped
        self.assertEqual("lnbc1lightning:", normalize_bolt11("lnbc1lightning:"))

    def test_empty_input(self):
        for text in ("", "   ", "\n", "lightning:", None):
            with self.assertRaises(EmptyInputError):
                parse_invoice(text)

    def test_garbage_input(self):
        for text in ("notaninvoice", "lnbc1xyz", "lightning:lnbc1qqqqqq"):
            with self.assertRaises(MalformedEncodingError):
                parse_invoice(text)

    def test_errors_carry_kind(self):
        with self.assertRaises(InvoiceError) as ctx:
            parse_invoice("")
        self.assertEqual('EmptyInput', ctx.exception.kind)
        self.assertTrue(str(ctx.exception).startswith('EmptyInput: '))

        with self.assertRaises(InvoiceError) as ctx:
            parse_invoice("notaninvoice")
        self.assertEqual('MalformedEncoding', ctx.exception.kind)

    def test_strict_description_from_config(self):
        data5 = int_to_data5(TIMESTAMP, bit_len=35) + tagged8('p', RHASH) + tagged8('s', PAYMENT_SECRET)
        bolt11 = sign_data5('lnbc', data5)

        invoice = parse_invoice(bolt11, config=SimpleConfig({'bolt11_strict_description': 'false'}))
        self.assertIsNone(invoice.invoice_description)
        self.assertIsNone(invoice.description)

        with self.assertRaises(InvoiceValidationError) as ctx:
            parse_invoice(bolt11, config=SimpleConfig({'bolt11_strict_description': True}))
        self.assertEqual('Validation', ctx.exception.kind)

    def test_expiry(self):
        invoice = parse_invoice(MAINNET_INVOICE)
        self.assertEqual(1651524875 + 604800, invoice.expires_at())
        self.assertFalse(invoice.is_expired(now=1651524875))
        self.assertFalse(invoice.is_expired(now=invoice.expires_at()))
        self.assertTrue(invoice.is_expired(now=invoice.expires_at() + 1))
        self.assertTrue(invoice.is_expired())

    def test_json_roundtrip(self):
        for bolt11 in (MAINNET_INVOICE, INVOICE_ROUTE_HINT, INVOICE_COFFEE):
            invoice = parse_invoice(bolt11)
            d = invoice.to_json()
            self.assertEqual(d, LNInvoice.from_json(d).to_json())

    def test_to_json(self):
        d = parse_invoice(INVOICE_COFFEE).to_json()
        self.assertEqual('mainnet', d['network'])
        self.assertEqual('1 cup coffee', d['description'])
        self.assertIsNone(d['description_hash'])
        self.assertEqual(100_000_000, d['amount_msat'])
        self.assertEqual(60, d['expiry'])
        self.assertEqual([9, 15, 17], d['features'])
        self.assertEqual(PAYMENT_SECRET.hex(), d['payment_secret'])

        hop = parse_invoice(INVOICE_ROUTE_HINT).to_json()['routing_hints'][0]['hops'][0]
        self.assertEqual('66051x263430x1800', hop['short_channel_id_str'])
        self.assertEqual(0x0102030405060708, hop['short_channel_id'])


class TestValidateNetwork(LNInvoiceTestCase):

    def test_matching_network(self):
        validate_network(parse_invoice(MAINNET_INVOICE), constants.BitcoinMainnet)
        validate_network(parse_invoice(MAINNET_INVOICE), 'mainnet')
        validate_network(parse_invoice(TESTNET_INVOICE), constants.BitcoinTestnet)

    def test_mismatching_network(self):
        with self.assertRaises(InvalidNetworkError) as ctx:
            validate_network(parse_invoice(MAINNET_INVOICE), constants.BitcoinTestnet)
        self.assertEqual('InvalidNetwork', ctx.exception.kind)
        self.assertIn("Invoice network does not match config", str(ctx.exception))
        # also a validation error
        with self.assertRaises(InvoiceValidationError):
            validate_network(parse_invoice(TESTNET_INVOICE), constants.BitcoinMainnet)

    def test_testnet_is_not_signet_or_regtest(self):
        invoice = parse_invoice(TESTNET_INVOICE)
        for net in (constants.BitcoinSignet, constants.BitcoinRegtest):
            with self.assertRaises(InvalidNetworkError):
                validate_network(invoice, net)

    def test_unknown_network_name(self):
        with self.assertRaises(InvalidNetworkError):
            validate_network(parse_invoice(MAINNET_INVOICE), 'litecoin')

    def test_network_from_config(self):
        invoice = parse_invoice(TESTNET_INVOICE)
        validate_network(invoice, config=SimpleConfig({'network': 'testnet'}))
        with self.assertRaises(InvalidNetworkError):
            validate_network(invoice, config=SimpleConfig({'network': 'mainnet'}))

    def test_unknown_network_in_config(self):
        invoice = parse_invoice(MAINNET_INVOICE)
        with self.assertRaises(InvalidNetworkError) as ctx:
            validate_network(invoice, config=SimpleConfig({'network': 'simnet'}))
        self.assertIn("simnet", str(ctx.exception))

    def test_default_network(self):
        validate_network(parse_invoice(MAINNET_INVOICE))
        with self.assertRaises(InvalidNetworkError):
            validate_network(parse_invoice(TESTNET_INVOICE))

    @as_testnet
    def test_default_network_testnet(self):
        validate_network(parse_invoice(TESTNET_INVOICE))
        validate_network(parse_invoice(TESTNET_INVOICE), config=SimpleConfig())
        with self.assertRaises(InvalidNetworkError):
            validate_network(parse_invoice(MAINNET_INVOICE))


class TestTestnetSuite(LNInvoiceTestCase):
    TESTNET = True

    def test_config_follows_selected_network(self):
        self.assertEqual('testnet', SimpleConfig().NETWORK)
        validate_network(parse_invoice(TESTNET_INVOICE))
