from __future__ import annotations

import logging
import threading
import weakref
from typing import Any, Dict, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from groupbot.core.catalog import CatalogIndex
from groupbot.core.config import Settings, SlotNames
from groupbot.core.errors import (
    GroupJoinFailed,
    NluUnavailable,
    ProfileLookupFailed,
    SendFailed,
    UnknownCustomIntent,
)
from groupbot.core.logger import SessionLogger
from groupbot.core.recommend import RecommendationEngine
from groupbot.core.router import ReplyRouter
from groupbot.core.scheduler import Scheduler, TimerScheduler
from groupbot.core.slot_store import SlotStore
from groupbot.core.types import (
    CustomIntent,
    IncomingMessage,
    MessagingEvent,
    NluReply,
    OutboundAction,
    SenderAction,
    TextAction,
)

log = logging.getLogger("groupbot.pipeline")

FIND_GROUPS = "find_groups"
JOIN_GROUP_PREFIX = "JOIN_GROUP"


class NluGateway(Protocol):
    def query(self, user_id: str, text: str, slots: Optional[Dict[str, Any]]) -> NluReply: ...


class MessageSender(Protocol):
    def send(self, recipient_id: str, action: OutboundAction) -> Optional[str]: ...

    def get_profile(self, user_id: str) -> Dict[str, Any]: ...

    def join_group(self, group_id: str, user_id: str) -> Dict[str, Any]: ...


class RelayPipeline:
    def __init__(
        self,
        store: SlotStore,
        gateway: NluGateway,
        sender: MessageSender,
        engine: RecommendationEngine,
        router: Optional[ReplyRouter] = None,
        scheduler: Optional[Scheduler] = None,
        slot_names: SlotNames = SlotNames(),
        recommendation_delay: float = 1.0,
        logs_dir: Optional[str] = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.sender = sender
        self.engine = engine
        self.router = router or ReplyRouter()
        self.scheduler = scheduler or TimerScheduler()
        self.slot_names = slot_names
        self.recommendation_delay = recommendation_delay
        self.logs_dir = logs_dir
        # A logger lives only while some turn or pending continuation holds it
        self._loggers: weakref.WeakValueDictionary[str, SessionLogger] = weakref.WeakValueDictionary()
        self._loggers_guard = threading.Lock()

    def _get_logger(self, user_id: str) -> SessionLogger:
        with self._loggers_guard:
            logger = self._loggers.get(user_id)
            if logger is None:
                logger = SessionLogger(user_id, base_dir=self.logs_dir)
                self._loggers[user_id] = logger
            return logger

    def _send(self, logger: SessionLogger, user_id: str, action: OutboundAction) -> bool:
        try:
            message_id = self.sender.send(user_id, action)
        except SendFailed as exc:
            logger.error("SendFailed", str(exc), status_code=exc.status_code, action=action.model_dump())
            return False
        logger.sent(action.model_dump(), message_id)
        if isinstance(action, TextAction):
            logger.assistant_message(action.text)
        return True

    def _text(self, user_id: str, text: str) -> None:
        self._send(self._get_logger(user_id), user_id, TextAction(text=text))

    # Webhook entry

    def handle_webhook(self, body: Any) -> int:
        """Process every messaging event of a raw delivery in order; returns how many were seen."""
        if not isinstance(body, Mapping) or body.get("object") != "page":
            log.info("Ignoring webhook for object %r", body.get("object") if isinstance(body, Mapping) else body)
            return 0
        entries = body.get("entry")
        handled = 0
        for entry in entries if isinstance(entries, list) else []:
            messaging = entry.get("messaging") if isinstance(entry, Mapping) else None
            if not isinstance(messaging, list):
                log.warning("Skipping webhook entry without messaging: %r", entry)
                continue
            for event in messaging:
                self.handle_event(event)
                handled += 1
        return handled

    def handle_event(self, event: Union[MessagingEvent, Mapping[str, Any]]) -> None:
        if not isinstance(event, MessagingEvent):
            try:
                event = MessagingEvent.model_validate(event)
            except ValidationError as exc:
                log.warning("Dropping malformed messaging event %r: %s", event, exc)
                return
        try:
            if event.optin is not None:
                self.on_optin(event)
            elif event.message is not None:
                self.on_message(event)
            elif event.delivery is not None:
                self.on_delivery(event)
            elif event.postback is not None:
                self.on_postback(event)
            elif event.read is not None:
                self.on_read(event)
            elif event.account_linking is not None:
                self.on_account_link(event)
            else:
                log.warning("Webhook received unknown messaging event: %s", event.model_dump())
        except Exception:
            # One bad event must not stop the rest of the delivery
            log.exception("Unhandled error for user %s", event.sender.id)

    # Event kinds

    def on_optin(self, event: MessagingEvent) -> None:
        user_id = event.sender.id
        self._get_logger(user_id).info(
            "Received authentication", ref=event.optin.ref, timestamp=event.timestamp
        )
        self._text(user_id, "Authentication successful")

    def on_message(self, event: MessagingEvent) -> None:
        user_id = event.sender.id
        message: IncomingMessage = event.message
        logger = self._get_logger(user_id)

        if message.is_echo:
            logger.info("Received echo", mid=message.mid, app_id=message.app_id, metadata=message.metadata)
            return
        if message.quick_reply is not None:
            logger.info("Quick reply", mid=message.mid, payload=message.quick_reply.payload)
            self.run_turn(user_id, message.quick_reply.payload)
            return
        if message.text:
            self.run_turn(user_id, message.text, seed_profile=True)
        elif message.attachments:
            self._text(user_id, "Message with attachment received")

    def on_delivery(self, event: MessagingEvent) -> None:
        logger = self._get_logger(event.sender.id)
        for mid in event.delivery.mids or []:
            logger.info("Received delivery confirmation", mid=mid)
        logger.info("All messages before watermark were delivered", watermark=event.delivery.watermark)

    def on_postback(self, event: MessagingEvent) -> None:
        user_id = event.sender.id
        payload = event.postback.payload
        logger = self._get_logger(user_id)
        logger.info("Received postback", payload=payload, timestamp=event.timestamp)

        if not payload.startswith(JOIN_GROUP_PREFIX):
            self._text(user_id, "Postback called")
            return

        self._text(user_id, "Let me invite you to the group!")
        parts = payload.split(",")
        if len(parts) < 2 or not parts[1].strip():
            logger.error("GroupJoinFailed", "Postback has no group id", payload=payload)
            return
        group_id = parts[1].strip()
        try:
            body = self.sender.join_group(group_id, user_id)
        except GroupJoinFailed as exc:
            logger.error("GroupJoinFailed", str(exc), status_code=exc.status_code, group_id=group_id)
            return
        logger.info("Sent invite", group_id=group_id, response=body)

    def on_read(self, event: MessagingEvent) -> None:
        self._get_logger(event.sender.id).info(
            "Received message read event", watermark=event.read.watermark, seq=event.read.seq
        )

    def on_account_link(self, event: MessagingEvent) -> None:
        self._get_logger(event.sender.id).info(
            "Received account link event",
            status=event.account_linking.status,
            authorization_code=event.account_linking.authorization_code,
        )

    # Turn

    def _seed_profile(self, logger: SessionLogger, user_id: str) -> None:
        try:
            profile = self.sender.get_profile(user_id)
        except ProfileLookupFailed as exc:
            logger.error("ProfileLookupFailed", str(exc))
            return
        first_name = profile.get("first_name")
        if first_name:
            self.store.merge(user_id, {self.slot_names.user_name: first_name})

    def run_turn(self, user_id: str, text: str, seed_profile: bool = False) -> None:
        """One utterance through NLU and reply dispatch, serialized per user."""
        logger = self._get_logger(user_id)
        with self.store.lock(user_id):
            logger.user_message(text)
            if seed_profile and user_id not in self.store:
                self._seed_profile(logger, user_id)

            slots = self.store.get(user_id)
            self._send(logger, user_id, SenderAction(action="typing_on"))
            try:
                reply = self.gateway.query(user_id, text, slots)
            except NluUnavailable as exc:
                logger.error("NluUnavailable", str(exc), text=text)
                return
            logger.step("nlu", {"text": text, "slots": slots}, reply.model_dump())

            merged = self.store.merge(user_id, reply.parameters)
            logger.slots(slots, merged)

            routed = self.router.route(reply.directives)
            logger.step("router", {"directives": len(reply.directives)}, routed.model_dump())
            for action in routed.actions:
                self._send(logger, user_id, action)

            if routed.custom is not None:
                try:
                    self._dispatch_custom(user_id, routed.custom, merged)
                except UnknownCustomIntent as exc:
                    logger.error("UnknownCustomIntent", str(exc), payload=routed.custom.payload)

            self._send(logger, user_id, SenderAction(action="typing_off"))

    def _dispatch_custom(self, user_id: str, custom: CustomIntent, slots: Dict[str, Any]) -> None:
        if custom.intent_name != FIND_GROUPS:
            raise UnknownCustomIntent(custom.intent_name)

        logger = self._get_logger(user_id)
        snapshot = dict(slots)

        def finish() -> None:
            self._send(logger, user_id, SenderAction(action="typing_off"))
            self.send_recommendations(user_id, snapshot)

        def think() -> None:
            self._send(logger, user_id, SenderAction(action="typing_on"))
            self.scheduler.call_later(self.recommendation_delay, finish)

        self.scheduler.call_later(self.recommendation_delay, think)

    def send_recommendations(self, user_id: str, slots: Dict[str, Any]) -> None:
        logger = self._get_logger(user_id)
        with self.store.lock(user_id):
            result = self.engine.run(user_id, slots)
            logger.step(
                "recommend",
                {"slots": slots, "criteria": result.criteria.model_dump()},
                {"titles": [item.title for item in result.items], "completed": result.completed},
            )
            for action in result.actions:
                self._send(logger, user_id, action)
            if result.completed:
                logger.info("Session completed; slots cleared")


def build_gateway(settings: Settings) -> NluGateway:
    if settings.nlu_backend == "rules":
        from groupbot.gateways.nlu_rules import RuleNluGateway

        return RuleNluGateway(settings.slots)
    if settings.nlu_backend == "bedrock":
        from groupbot.gateways.nlu_bedrock import BedrockNluGateway

        return BedrockNluGateway(settings.slots)
    from groupbot.gateways.nlu_apiai import ApiAiGateway

    return ApiAiGateway(settings)


def build_pipeline(settings: Settings) -> RelayPipeline:
    from groupbot.gateways.messenger import MessengerClient

    store = SlotStore()
    catalog = CatalogIndex.load(settings.catalog_path, settings.server_url)
    engine = RecommendationEngine(
        catalog,
        store,
        slot_names=settings.slots,
        group_url_template=settings.group_url_template,
        limit=settings.max_recommendations,
    )
    return RelayPipeline(
        store=store,
        gateway=build_gateway(settings),
        sender=MessengerClient(settings),
        engine=engine,
        slot_names=settings.slots,
        recommendation_delay=settings.recommendation_delay,
        logs_dir=str(settings.logs_dir),
    )
