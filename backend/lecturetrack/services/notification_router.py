"""
Routeur de notifications multi-canal.

Pour chaque destinataire :
  1. Charger ses préférences (créées avec les défauts si absentes)
  2. Déterminer les canaux : surcharge explicite, sinon canaux de la catégorie
     activés et dont la priorité minimale est atteinte ; in_app toujours inclus
  3. Heures calmes : hors priorité urgent, seul in_app est conservé
  4. scheduled_for dans le futur : rien n'est envoyé, l'événement est stocké
     comme notification différée (rejouée par le scheduler)
  5. Rendre le contenu de chaque canal et lancer tous les envois en parallèle
  6. Agréger : un utilisateur est servi si au moins un canal a réussi,
     l'envoi global réussit si au moins un utilisateur est servi

Les échecs d'un canal (fournisseur, réseau, délai dépassé) sont consignés dans
le résultat ; aucun renvoi n'est tenté ici.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, time, timezone
from typing import Callable, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from lecturetrack.config import settings
from lecturetrack.database import utcnow
from lecturetrack.enums import Channel, NotificationPriority, NotificationStatus
from lecturetrack.models.notification import Notification
from lecturetrack.models.user import User
from lecturetrack.schemas.notification import (
    SCHEDULED_CHANNEL,
    ChannelResult,
    DeliveryResult,
    NotificationEvent,
    RouteResult,
    UserDeliveryResult,
)
from lecturetrack.schemas.preferences import NotificationPreferences, QuietHours
from lecturetrack.services.channel_senders import default_senders
from lecturetrack.services.notification_templates import Recipient, render_for_channel
from lecturetrack.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------
# Décisions pures (canaux, heures calmes)
# ----------------------------------------------------------------

def resolve_channels(event: NotificationEvent, preferences: NotificationPreferences) -> List[Channel]:
    """Canaux candidats d'un événement pour un utilisateur, in_app toujours en tête."""
    if event.channels is not None:
        candidates = list(event.channels)
    else:
        candidates = [
            pref.type
            for pref in preferences.categories.get(event.category, [])
            if pref.enabled and (pref.priority is None or event.priority.rank >= pref.priority.rank)
        ]

    channels = [Channel.IN_APP]
    for channel in candidates:
        if channel not in channels:
            channels.append(channel)
    return channels


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def is_quiet_time(quiet_hours: Optional[QuietHours], now: datetime) -> bool:
    """
    Vrai si `now` tombe dans [start, end) des heures calmes, évaluées dans le fuseau
    de l'utilisateur. Une fenêtre qui passe minuit (22:00 → 07:00) est supportée ;
    start == end désigne une fenêtre vide.
    """
    if quiet_hours is None or not quiet_hours.enabled:
        return False

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    try:
        tz = ZoneInfo(quiet_hours.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Fuseau horaire inconnu %r, heures calmes évaluées en UTC", quiet_hours.timezone)
        tz = ZoneInfo("UTC")

    local = now.astimezone(tz).time().replace(second=0, microsecond=0)
    start = _parse_hhmm(quiet_hours.start)
    end = _parse_hhmm(quiet_hours.end)

    if start == end:
        return False
    if start < end:
        return start <= local < end
    return local >= start or local < end


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ----------------------------------------------------------------
# Routeur
# ----------------------------------------------------------------

class NotificationRouter:
    def __init__(
        self,
        db: Session,
        preference_store: Optional[PreferenceStore] = None,
        senders: Optional[Dict[Channel, object]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        timeout: Optional[float] = None,
        max_workers: Optional[int] = None,
    ):
        self.db = db
        self.preference_store = preference_store or PreferenceStore(db)
        self.senders = senders if senders is not None else default_senders()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_SEND_TIMEOUT_SECONDS
        self.max_workers = max_workers or settings.NOTIFICATION_MAX_WORKERS

    def route(self, event: NotificationEvent) -> RouteResult:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        if event.scheduled_for is not None and _to_naive_utc(event.scheduled_for) > _to_naive_utc(now):
            return self._schedule(event)

        results: Dict[uuid.UUID, List[ChannelResult]] = {}
        jobs: List[Tuple[uuid.UUID, Channel, Recipient, object]] = []

        for user_id in event.user_ids:
            if user_id in results:
                continue
            user = self.db.get(User, user_id)
            if user is None:
                results[user_id] = [self._failed("system", f"Utilisateur {user_id} introuvable.")]
                continue

            recipient = Recipient(id=user.id, name=user.full_name, email=user.email, phone=user.phone_number)
            preferences = self.preference_store.get(user_id)
            channels = resolve_channels(event, preferences)

            if event.priority != NotificationPriority.URGENT and is_quiet_time(preferences.quiet_hours, now):
                logger.info("Heures calmes pour %s : envoi limité au canal in_app", user_id)
                channels = [Channel.IN_APP]

            results[user_id] = []
            for channel in channels:
                if channel not in self.senders:
                    results[user_id].append(
                        self._failed(channel.value, f"Aucun expéditeur configuré pour le canal {channel.value}.")
                    )
                    continue
                content = render_for_channel(channel, event, recipient)
                jobs.append((user_id, channel, recipient, content))

        for user_id, channel_result in self._dispatch(event, jobs):
            results[user_id].append(channel_result)

        user_results = [
            UserDeliveryResult(
                user_id=user_id,
                success=any(r.success for r in channel_results),
                channels=channel_results,
            )
            for user_id, channel_results in results.items()
        ]
        for user_result in user_results:
            self._log_delivery(event, user_result)

        return RouteResult(success=any(r.success for r in user_results), results=user_results)

    def _dispatch(self, event: NotificationEvent, jobs) -> List[Tuple[uuid.UUID, ChannelResult]]:
        """Lance tous les envois en parallèle et attend leur fin (ou le délai global)."""
        if not jobs:
            return []

        executor = ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs)))
        try:
            futures = {
                executor.submit(self.senders[channel].send, recipient, content, event): (user_id, channel)
                for user_id, channel, recipient, content in jobs
            }
            done, _ = wait(futures, timeout=self.timeout)

            collected = []
            for future, (user_id, channel) in futures.items():
                if future not in done:
                    collected.append((user_id, self._failed(channel.value, "Délai d'envoi dépassé.")))
                    continue
                try:
                    delivery: DeliveryResult = future.result()
                except Exception as exc:
                    logger.error("Expéditeur %s en erreur pour %s : %s", channel.value, user_id, exc)
                    delivery = DeliveryResult(success=False, error=str(exc))
                collected.append((
                    user_id,
                    ChannelResult(
                        channel=channel.value,
                        success=delivery.success,
                        message_id=delivery.message_id,
                        error=delivery.error,
                        attempted_at=utcnow(),
                    ),
                ))
            return collected
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _schedule(self, event: NotificationEvent) -> RouteResult:
        """
        Stocke l'événement comme notification différée, une par destinataire existant.
        Un destinataire inconnu reçoit un échec `system`, comme sur l'envoi immédiat.
        """
        scheduled_for = _to_naive_utc(event.scheduled_for)
        payload = event.model_dump(mode="json", exclude={"user_ids", "scheduled_for"})

        entries: List[Tuple[uuid.UUID, Optional[Notification]]] = []
        for user_id in dict.fromkeys(event.user_ids):
            if self.db.get(User, user_id) is None:
                logger.warning("Notification différée ignorée pour %s : utilisateur introuvable", user_id)
                entries.append((user_id, None))
                continue
            row = Notification(
                recipient_id=user_id,
                category=event.category.value,
                priority=event.priority.value,
                title=event.title,
                message=event.message,
                action_url=event.action_url,
                data=payload,
                status=NotificationStatus.SCHEDULED.value,
                scheduled_for=scheduled_for,
            )
            self.db.add(row)
            entries.append((user_id, row))

        stored = sum(1 for _, row in entries if row is not None)
        if stored:
            self.db.commit()
            logger.info(
                "Notification %s différée au %s pour %d destinataire(s)",
                event.category.value, scheduled_for.isoformat(), stored,
            )

        results = []
        for user_id, row in entries:
            if row is None:
                channel_result = self._failed("system", f"Utilisateur {user_id} introuvable.")
            else:
                channel_result = ChannelResult(
                    channel=SCHEDULED_CHANNEL,
                    success=True,
                    message_id=str(row.id),
                    attempted_at=utcnow(),
                )
            results.append(UserDeliveryResult(
                user_id=user_id,
                success=channel_result.success,
                channels=[channel_result],
            ))
        return RouteResult(success=any(r.success for r in results), results=results)

    @staticmethod
    def _failed(channel: str, error: str) -> ChannelResult:
        return ChannelResult(channel=channel, success=False, error=error, attempted_at=utcnow())

    @staticmethod
    def _log_delivery(event: NotificationEvent, result: UserDeliveryResult) -> None:
        succeeded = [r.channel for r in result.channels if r.success]
        failed = [f"{r.channel} ({r.error})" for r in result.channels if not r.success]
        if not result.success:
            # Aucun canal, in_app compris : l'utilisateur n'a aucune trace de l'événement
            logger.error(
                "Notification %s/%s NON délivrée à %s, échecs : %s",
                event.category.value, event.priority.value, result.user_id, ", ".join(failed) or "aucun canal",
            )
            return
        logger.info(
            "Notification %s/%s délivrée à %s, réussis : %s, échecs : %s",
            event.category.value, event.priority.value, result.user_id,
            ", ".join(succeeded), ", ".join(failed) or "aucun",
        )
