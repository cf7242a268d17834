import threading
from typing import Union, Optional, Dict, Sequence, Any, Callable, Type
from copy import deepcopy

from . import constants
from .logging import Logger
from .util import InvalidNetworkError


_config_var_from_key = {}  # type: Dict[str, 'ConfigVar']


class ConfigVar(property):

    def __init__(
        self,
        key: str,
        *,
        default: Union[Any, Callable[['SimpleConfig'], Any]],  # typically a literal, but can also be a callable
        type_=None,
        convert_getter: Callable[[Any], Any] = None,
        short_desc: Callable[[], str] = None,
    ):
        self._key = key
        self._default = default
        self._type = type_
        self._convert_getter = convert_getter
        assert short_desc is None or callable(short_desc)
        self._short_desc = short_desc
        property.__init__(self, self._get_config_value, self._set_config_value)
        assert key not in _config_var_from_key, f"duplicate config key str: {key!r}"
        _config_var_from_key[key] = self

    def _get_config_value(self, config: 'SimpleConfig'):
        with config.lock:
            if config.is_set(self._key):
                value = config.get(self._key)
                # run converter
                if self._convert_getter is not None:
                    value = self._convert_getter(value)
                # type-check
                if self._type is not None:
                    assert value is not None, f"got None for key={self._key!r}"
                    try:
                        value = self._type(value)
                    except Exception as e:
                        raise ValueError(
                            f"ConfigVar.get type-check and auto-conversion failed. "
                            f"key={self._key!r}. type={self._type}. value={value!r}") from e
            else:
                d = self._default
                value = d(config) if callable(d) else d
            return value

    def _set_config_value(self, config: 'SimpleConfig', value):
        if self._type is not None and value is not None:
            if not isinstance(value, self._type):
                raise ValueError(
                    f"ConfigVar.set type-check failed. "
                    f"key={self._key!r}. type={self._type}. value={value!r}")
        config.set_key(self._key, value)

    def key(self) -> str:
        return self._key

    def get_default_value(self) -> Any:
        return self._default

    def get_short_desc(self) -> Optional[str]:
        desc = self._short_desc
        return desc() if desc else None

    def __repr__(self):
        return f"<ConfigVar key={self._key!r}>"

    def __deepcopy__(self, memo):
        # We can be considered ~stateless. State is stored in the config, which is external.
        return self


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


class SimpleConfig(Logger):
    """
    In-memory configuration of the invoice codec.

    Values come from the `options` dict passed by the embedding application
    (e.g. its command line or its own config file); nothing is read from or
    written to disk here.
    """

    def __init__(self, options=None):
        if options is None:
            options = {}
        for config_key in options:
            assert isinstance(config_key, str), f"{config_key=!r} has type={type(config_key)}, expected str"

        Logger.__init__(self)

        # This lock needs to be acquired for updating and reading the config in
        # a thread-safe way.
        self.lock = threading.RLock()
        self.options = deepcopy(options)
        unknown_keys = sorted(k for k in self.options if k not in _config_var_from_key)
        if unknown_keys:
            self.logger.debug(f"ignoring unknown config keys: {unknown_keys}")

    def list_config_vars(self) -> Sequence[str]:
        return list(sorted(_config_var_from_key.keys()))

    def set_key(self, key: Union[str, ConfigVar], value) -> None:
        """Set the value for an arbitrary string config key.
        note: try to use explicit predefined ConfigVars instead of this method, whenever possible.
        """
        if isinstance(key, ConfigVar):
            key = key.key()
        assert isinstance(key, str), key
        with self.lock:
            if value is None:
                self.options.pop(key, None)
            else:
                self.options[key] = value

    def get(self, key: str, default=None) -> Any:
        assert isinstance(key, str), key
        with self.lock:
            out = self.options.get(key)
            if out is None:
                out = default
        return out

    def is_set(self, key: Union[str, ConfigVar]) -> bool:
        """Returns whether the config key has any explicit value set/defined."""
        if isinstance(key, ConfigVar):
            key = key.key()
        assert isinstance(key, str), key
        return self.get(key, default=...) is not ...

    def get_selected_chain(self) -> Type[constants.AbstractNet]:
        name = self.NETWORK
        try:
            return constants.net_from_name(name)
        except KeyError:
            raise InvalidNetworkError(f"Unknown network {name!r} in config") from None

    # config variables ----->
    LOG_VERBOSITY = ConfigVar('verbosity', default='', type_=str)
    NETWORK = ConfigVar(
        'network', default=lambda config: constants.net.NET_NAME, type_=str,
        short_desc=lambda: 'Network that invoices are expected to belong to',
    )
    BOLT11_STRICT_DESCRIPTION = ConfigVar(
        'bolt11_strict_description', default=False, type_=bool, convert_getter=_parse_bool,
        short_desc=lambda: 'Reject invoices without exactly one of the d/h fields',
    )
