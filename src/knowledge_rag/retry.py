"""Bounded retry policy shared by every provider call site.

A :class:`RetryPolicy` is a value object: maximum attempts, a fixed or
exponential delay, and a predicate deciding which exceptions are worth
another try.  It is applied through ``backoff.on_exception`` so the
retry/log behaviour is identical wherever it is used::

    policy = RetryPolicy(max_attempts=2, delay=1.0)
    response = policy.call(client.embeddings.create, model=model, input=texts)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import backoff

from knowledge_rag.errors import KnowledgeRagError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def status_of(exc: BaseException) -> int | None:
    """Return the HTTP status carried by a provider exception, if any.

    OpenAI errors expose ``status_code``; Pinecone API exceptions expose
    ``status``.
    """
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_transient_status(status: int | None) -> bool:
    return status is not None and (status == 429 or status >= 500)


def is_transient(exc: BaseException) -> bool:
    """Default predicate: retry rate limiting (429) and server errors (5xx)."""
    if isinstance(exc, TransientProviderError):
        return True
    return is_transient_status(status_of(exc))


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one call site.

    Parameters
    ----------
    max_attempts:
        Total number of tries, including the first one.
    delay:
        Fixed wait between tries, or the base of the exponential wait.
    exponential:
        Use ``delay * 2**n`` instead of a constant ``delay``.
    max_delay:
        Upper bound for a single exponential wait.
    retry_on:
        Predicate over the raised exception; ``False`` gives up immediately.
    """

    max_attempts: int = 2
    delay: float = 1.0
    exponential: bool = False
    max_delay: float | None = None
    retry_on: Callable[[BaseException], bool] = is_transient

    def wrap(self, func: Callable[..., T]) -> Callable[..., T]:
        """Decorate *func* with this policy."""
        if self.exponential:
            wait_gen, wait_kwargs = backoff.expo, {"factor": self.delay, "max_value": self.max_delay}
        else:
            wait_gen, wait_kwargs = backoff.constant, {"interval": self.delay}

        retry_on = self.retry_on

        # backoff logs ``target.__name__``, which callable objects and mocks lack.
        def _attempt(*args: Any, **kwargs: Any) -> T:
            return func(*args, **kwargs)

        _attempt.__name__ = getattr(func, "__name__", type(func).__name__)

        return backoff.on_exception(
            wait_gen,
            Exception,
            max_tries=max(1, self.max_attempts),
            giveup=lambda exc: not retry_on(exc),
            jitter=None,
            logger=logger,
            giveup_log_level=logging.WARNING,
            **wait_kwargs,
        )(_attempt)

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Invoke *func* under this policy.

        A provider error that is still rate-limited or failing server-side
        after the last attempt is re-raised as :class:`TransientProviderError`.
        Everything else propagates unchanged.
        """
        try:
            return self.wrap(func)(*args, **kwargs)
        except KnowledgeRagError:
            raise
        except Exception as exc:
            status = status_of(exc)
            if is_transient_status(status):
                raise TransientProviderError(status, str(exc)) from exc
            raise
