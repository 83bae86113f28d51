"""
Polling de confirmation de commande (page de succès).
Le webhook crée la commande de façon asynchrone: on interroge /api/orders/verify
jusqu'à ce qu'elle apparaisse, avec un budget borné.
- Premier contrôle immédiat, puis toutes les ORDER_POLL_INTERVAL_SECONDS.
- Au plus ORDER_POLL_MAX_ATTEMPTS contrôles.
- Une erreur de transport compte comme un échec transitoire (on continue).
- Identifiant vide: 'error' immédiat, sans requête.
- Budget épuisé: 'error' si le dernier contrôle a échoué, sinon 'not_found'.
- 'found' est terminal: plus aucune requête; on_found (ex.: vider la sacola) est appelé une fois.
- not_found / error ne sont jamais des échecs de paiement: ConfirmationTimeout (« ainda processando »).
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional
import asyncio
import logging

import httpx

from storefront import config
from storefront.errors import ConfirmationTimeout

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    CHECKING = "checking"
    FOUND = "found"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass
class CheckResult:
    exists: bool
    order_id: Optional[str] = None
    status: Optional[str] = None


@dataclass
class PollerOutcome:
    state: PollerState
    attempts: int
    order_id: Optional[str] = None
    errors: int = 0

    def timeout_error(self) -> Optional[ConfirmationTimeout]:
        """Erreur douce à afficher quand le budget est épuisé; None si trouvée ou annulée."""
        if self.state == PollerState.NOT_FOUND:
            return ConfirmationTimeout(
                "Pagamento aprovado. Estamos confirmando seu pedido; você receberá o e-mail de confirmação em breve.",
                {"attempts": self.attempts},
            )
        if self.state == PollerState.ERROR:
            return ConfirmationTimeout(
                "Não foi possível verificar o pedido. Seu pagamento foi aprovado: entre em contato com o suporte "
                "informando o código da compra.",
                {"attempts": self.attempts, "errors": self.errors},
            )
        return None


Checker = Callable[[str], Awaitable[CheckResult]]


class OrderConfirmationPoller:
    def __init__(
        self,
        check: Checker,
        *,
        interval: float = config.ORDER_POLL_INTERVAL_SECONDS,
        max_attempts: int = config.ORDER_POLL_MAX_ATTEMPTS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_found: Optional[Callable[[PollerOutcome], Any]] = None,
    ):
        self._check = check
        self.interval = interval
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._on_found = on_found
        self._cancelled = asyncio.Event()
        self.state = PollerState.CHECKING
        self.attempts = 0
        self.errors = 0
        self._last_failed = False
        self.order_id: Optional[str] = None

    def cancel(self) -> None:
        """Arrête les contrôles suivants (ex.: l'utilisateur quitte la page)."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def _wait(self) -> None:
        # Réveil anticipé si cancel() est appelé pendant l'attente
        sleeper = asyncio.ensure_future(self._sleep(self.interval))
        canceller = asyncio.ensure_future(self._cancelled.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, canceller):
                if not task.done():
                    task.cancel()

    async def run(self, gateway_id: str) -> PollerOutcome:
        if not (gateway_id or "").strip():
            self.state = PollerState.ERROR
            logger.warning("orders.poller sans identifiant de commande")
            return self._outcome()
        while self.attempts < self.max_attempts and not self.cancelled:
            if self.attempts > 0:
                await self._wait()
                if self.cancelled:
                    break
            self.attempts += 1
            try:
                result = await self._check(gateway_id)
            except Exception as e:
                self.errors += 1
                self._last_failed = True
                logger.warning("orders.poller check failed attempt=%s gateway_id=%s: %s", self.attempts, gateway_id, e)
                continue
            if self.cancelled:
                # vue démontée pendant la requête: résultat ignoré
                break
            self._last_failed = False
            if result.exists:
                self.state = PollerState.FOUND
                self.order_id = result.order_id
                logger.info("orders.poller found attempt=%s order_id=%s", self.attempts, self.order_id)
                outcome = self._outcome()
                if self._on_found is not None:
                    self._on_found(outcome)
                return outcome

        if self.state == PollerState.CHECKING and not self.cancelled:
            self.state = PollerState.ERROR if self._last_failed else PollerState.NOT_FOUND
            logger.info("orders.poller budget exhausted state=%s attempts=%s", self.state.value, self.attempts)
        return self._outcome()

    def _outcome(self) -> PollerOutcome:
        return PollerOutcome(state=self.state, attempts=self.attempts, order_id=self.order_id, errors=self.errors)


def http_checker(base_url: str, *, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0) -> Checker:
    """Checker basé sur GET {base_url}/api/orders/verify?order_id=... (httpx.AsyncClient)."""

    async def _check(gateway_id: str) -> CheckResult:
        owned = client is None
        http = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        try:
            resp = await http.get("/api/orders/verify", params={"order_id": gateway_id})
            resp.raise_for_status()
            data: Dict[str, Any] = resp.json()
        finally:
            if owned:
                await http.aclose()
        return CheckResult(exists=bool(data.get("exists")), order_id=data.get("orderId"), status=data.get("status"))

    return _check
