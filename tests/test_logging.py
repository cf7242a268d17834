import logging

import lninvoice
from lninvoice import logging as lnlogging
from lninvoice.logging import get_logger, Logger, configure_logging, console_formatter
from lninvoice.lnutil import RouteHint, RouteHintHop
from lninvoice.route_hints import merge_route_hints
from lninvoice.simple_config import SimpleConfig

from . import LNInvoiceTestCase


def _hint(node_id: str) -> RouteHint:
    return RouteHint([RouteHintHop(src_node_id=node_id, short_channel_id=1, fees_base_msat=0,
                                   fees_proportional_millionths=0, cltv_expiry_delta=40)])


def _merge_with_conflict():
    node = '02' + '11' * 32
    merge_route_hints([_hint(node)], _hint(node), True)


class _ListHandler(logging.Handler):

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestLogging(LNInvoiceTestCase):

    def test_get_logger(self):
        self.assertEqual("lninvoice.lnaddr", get_logger("lninvoice.lnaddr").name)
        self.assertEqual("lninvoice.lnaddr", get_logger("lnaddr").name)

    def test_logger_mixin(self):
        class Dummy(Logger):
            pass

        self.assertEqual(f"lninvoice.{__name__}.Dummy", Dummy().logger.name)
        self.assertEqual("lninvoice.simple_config.SimpleConfig", SimpleConfig().logger.name)

    def test_console_formatter_on_merge_record(self):
        with self.assertLogs("lninvoice.route_hints", level="INFO") as cm:
            _merge_with_conflict()
        self.assertEqual(1, len(cm.records))
        text = console_formatter.format(cm.records[0])
        self.assertTrue(text.startswith("I | route_hints | dropping route hint"), text)
        # the record itself keeps its full name
        self.assertEqual("lninvoice.route_hints", cm.records[0].name)

    def test_verbosity_log_levels(self):
        logger = get_logger("route_hints")
        handler = _ListHandler()
        old_level = logger.level
        lnlogging.lninvoice_logger.addHandler(handler)
        try:
            lnlogging._process_verbosity_log_levels("route_hints=warning")
            self.assertEqual(logging.WARNING, logger.level)
            _merge_with_conflict()
            self.assertEqual([], handler.records)

            lnlogging._process_verbosity_log_levels("route_hints=info")
            _merge_with_conflict()
            self.assertEqual(1, len(handler.records))
            self.assertEqual(logging.INFO, handler.records[0].levelno)
        finally:
            logger.setLevel(old_level)
            lnlogging.lninvoice_logger.removeHandler(handler)

    def test_verbosity_star_changes_nothing(self):
        old_level = lnlogging.lninvoice_logger.level
        lnlogging._process_verbosity_log_levels("*")
        lnlogging._process_verbosity_log_levels(None)
        self.assertEqual(old_level, lnlogging.lninvoice_logger.level)

    def test_invalid_verbosity(self):
        with self.assertRaises(ValueError):
            lnlogging._process_verbosity_log_levels("a=b=c")

    def test_configure_logging_logs_version(self):
        with self.assertLogs("lninvoice.logging", level="INFO") as cm:
            configure_logging(SimpleConfig())
        self.assertTrue(any(f"lninvoice version: {lninvoice.__version__}" in line for line in cm.output))
