"""Contract base class and string-argument dispatch.

Transaction functions are plain ``async`` methods decorated with
:func:`transaction`. Invocations arrive as a function name plus positional
string arguments; :meth:`Contract.invoke` looks the name up, converts each
argument to the method's annotated type with pydantic, and only then calls
the method. A conversion failure is a :class:`ValidationError` and happens
before the contract touches state.
"""

from __future__ import annotations

import inspect
import logging
import typing
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pyvledger.canonical import canonical_json
from pyvledger.exceptions import ContractError, ValidationError
from pyvledger.models.vehicle import VehicleRecord
from pyvledger.state.store import LedgerStateStore

_logger = logging.getLogger(__name__)

_TRANSACTION_ATTR = "__pyvledger_transaction__"

TxFunc = Callable[..., Awaitable[Any]]


def _empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


FiniteFloat = Annotated[float, Field(allow_inf_nan=False)]
"""Float argument; ``nan`` / ``inf`` are rejected."""

OptionalStr = Annotated[str | None, BeforeValidator(_empty_to_none)]
"""String argument where the empty string means ``None``."""

NonEmptyStr = Annotated[str, Field(min_length=1)]


@dataclass(slots=True)
class TransactionContext:
    """Per-invocation context handed to every transaction function."""

    stub: LedgerStateStore
    transaction_id: str = ""
    msp_id: str = ""


@dataclass(frozen=True, slots=True)
class _TxMeta:
    name: str
    submit: bool


def transaction(name: str, *, submit: bool = True) -> Callable[[TxFunc], TxFunc]:
    """Register a method as a transaction function.

    *name* is the function name clients invoke. ``submit=False`` marks a
    query that is meant to be evaluated rather than ordered.
    """

    def decorator(func: TxFunc) -> TxFunc:
        setattr(func, _TRANSACTION_ATTR, _TxMeta(name=name, submit=submit))
        return func

    return decorator


@dataclass(frozen=True, slots=True)
class TransactionFunction:
    """A registered transaction function and its argument converters."""

    name: str
    method_name: str
    submit: bool
    params: tuple[tuple[str, TypeAdapter[Any]], ...]

    def bind(self, args: Sequence[str]) -> list[Any]:
        if len(args) != len(self.params):
            raise ValidationError(f"{self.name} expects {len(self.params)} argument(s), got {len(args)}")
        values: list[Any] = []
        for (param, adapter), raw in zip(self.params, args, strict=True):
            if not isinstance(raw, str):
                raise ValidationError(f"{self.name}: argument {param!r} must be a string, got {type(raw).__name__}")
            try:
                values.append(adapter.validate_python(raw))
            except PydanticValidationError as exc:
                reason = exc.errors()[0].get("msg", "invalid value") if exc.errors() else "invalid value"
                raise ValidationError(f"{self.name}: invalid {param!r} value {raw!r}: {reason}") from exc
        return values


def _build_function(cls: type, method_name: str, meta: _TxMeta) -> TransactionFunction:
    method = getattr(cls, method_name)
    hints = typing.get_type_hints(method, include_extras=True)
    params = list(inspect.signature(method).parameters.values())[2:]  # self, ctx
    adapters = tuple((p.name, TypeAdapter(hints.get(p.name, str))) for p in params)
    return TransactionFunction(name=meta.name, method_name=method_name, submit=meta.submit, params=adapters)


def encode_result(value: Any) -> bytes:
    """Convert a transaction function's return value to payload bytes."""
    if value is None:
        return b""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, VehicleRecord):
        return value.to_ledger_bytes()
    if isinstance(value, BaseModel):
        return canonical_json(value.model_dump(by_alias=True))
    return canonical_json(value)


class Contract:
    """Base class for contracts invoked by name with string arguments."""

    #: Extra function names dispatched to a registered transaction.
    aliases: ClassVar[dict[str, str]] = {}

    _registry: ClassVar[dict[str, TransactionFunction]] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._registry = {}

    @classmethod
    def _functions(cls) -> dict[str, TransactionFunction]:
        if not cls._registry:
            registry: dict[str, TransactionFunction] = {}
            for attr in dir(cls):
                meta = getattr(getattr(cls, attr, None), _TRANSACTION_ATTR, None)
                if isinstance(meta, _TxMeta):
                    registry[meta.name] = _build_function(cls, attr, meta)
            cls._registry = registry
        return cls._registry

    @classmethod
    def function_names(cls) -> list[str]:
        return sorted(cls._functions())

    @classmethod
    def lookup(cls, function: str) -> TransactionFunction:
        functions = cls._functions()
        target = cls.aliases.get(function, function)
        fn = functions.get(target)
        if fn is None:
            raise ValidationError(f"unknown transaction function {function!r}")
        return fn

    async def invoke(self, ctx: TransactionContext, function: str, args: Sequence[str]) -> bytes:
        """Run *function* with string *args* and return the payload bytes."""
        try:
            fn = self.lookup(function)
            values = fn.bind(args)
            _logger.debug("invoke %s tx=%s args=%d", fn.name, ctx.transaction_id, len(values))
            result = await getattr(self, fn.method_name)(ctx, *values)
        except ContractError as exc:
            if not exc.transaction_id:
                exc.transaction_id = ctx.transaction_id
            raise
        return encode_result(result)
