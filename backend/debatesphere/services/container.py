"""
Service container - wires storage, core components, agents and the
fan-out channel together once per process.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..agents import CoachAgent, DebateOrchestrator, OpponentAgent, ScoringAgent
from ..config.settings import Settings
from ..core.clock import Clock, utcnow
from ..core.ledger import MessageLedger
from ..core.locks import KeyedLock
from ..core.session_machine import SessionManager
from ..core.sweeper import SessionSweeper
from ..llm import LLMProvider, create_llm_provider
from ..realtime.channel import FanOutChannel
from ..storage import DebateStore, LocalStorage, StorageInterface, TopicStorage, UserStorage

logger = logging.getLogger(__name__)


@dataclass
class DebateServices:
    storage: StorageInterface
    users: UserStorage
    topics: TopicStorage
    store: DebateStore
    locks: KeyedLock
    ledger: MessageLedger
    sessions: SessionManager
    opponent: OpponentAgent
    scorer: ScoringAgent
    coach: CoachAgent
    channel: FanOutChannel
    orchestrator: DebateOrchestrator
    sweeper: SessionSweeper

    async def shutdown(self) -> None:
        await self.sweeper.stop()
        await self.orchestrator.shutdown()


def _provider_from_settings(config: Settings) -> Optional[LLMProvider]:
    provider = create_llm_provider(
        provider=config.llm_provider,
        api_key=config.llm_api_key,
        model=config.llm_model,
        base_url=config.llm_base_url,
    )
    if provider is None:
        logger.warning(
            "No LLM provider configured; AI turns will fail with generation_unavailable. "
            "Set LLM_API_KEY, or LLM_PROVIDER=mock for local development."
        )
    else:
        logger.info(f"LLM provider: {provider.provider_name} ({provider.model})")
    return provider


def build_services(
    config: Settings,
    storage: Optional[StorageInterface] = None,
    llm_provider: Optional[LLMProvider] = None,
    clock: Clock = utcnow,
) -> DebateServices:
    """
    Build every long-lived component.

    Args:
        config: Application settings
        storage: Storage backend (LocalStorage at ``local_storage_path`` if None)
        llm_provider: Generation provider (built from settings if None)
        clock: Source of "now" shared by the ledger and the session manager
    """
    storage = storage or LocalStorage(config.local_storage_path)
    if llm_provider is None:
        llm_provider = _provider_from_settings(config)

    users = UserStorage(storage)
    topics = TopicStorage(storage)
    store = DebateStore(storage)
    locks = KeyedLock()
    ledger = MessageLedger(store, locks, clock=clock)

    scorer = ScoringAgent(
        engine_version=config.scoring_engine_version,
        timeout_seconds=config.llm_timeout_seconds,
    )
    scorer.set_llm_provider(llm_provider)
    opponent = OpponentAgent(
        timeout_seconds=config.llm_timeout_seconds,
        context_messages=config.llm_context_messages,
        enrichment_enabled=config.ai_enrichment_enabled,
    )
    opponent.set_llm_provider(llm_provider)
    coach = CoachAgent(timeout_seconds=config.llm_timeout_seconds)
    coach.set_llm_provider(llm_provider)

    sessions = SessionManager(
        store, ledger, topics, locks,
        scorer=scorer,
        clock=clock,
        default_time_limit=config.default_time_limit_seconds,
    )
    channel = FanOutChannel(sessions, users)
    sessions.add_end_listener(channel.publish_ended)

    orchestrator = DebateOrchestrator(
        sessions, ledger, opponent,
        channel=channel,
        context_messages=config.llm_context_messages,
        enabled=config.ai_replies_enabled,
    )
    sweeper = SessionSweeper(sessions, interval_seconds=config.session_sweep_interval_seconds)

    return DebateServices(
        storage=storage,
        users=users,
        topics=topics,
        store=store,
        locks=locks,
        ledger=ledger,
        sessions=sessions,
        opponent=opponent,
        scorer=scorer,
        coach=coach,
        channel=channel,
        orchestrator=orchestrator,
        sweeper=sweeper,
    )
