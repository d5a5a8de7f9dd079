from sqlmodel import Session, select

from datetime import datetime, timezone
import hashlib

from clearance.core.log import get_logger
from clearance.models.Logs import AuditLog

logger = get_logger(__name__)


class LogService:

    def _format_timestamp_for_hash(self, timestamp: datetime) -> str:
        """Ensure consistent timestamp format for hash calculation.

        SQLite drops tzinfo, so the hash is computed over a naive timestamp
        with fixed precision to survive the database round-trip.
        """
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
        return timestamp.strftime("%Y-%m-%dT%H:%M:%S.%f")

    def _hash(self, action: str, timestamp: datetime, description: str, actor_id: str, previous_hash: str) -> str:
        formatted_timestamp = self._format_timestamp_for_hash(timestamp)
        hash_input = f"{action}|{formatted_timestamp}|{description}|{actor_id}|{previous_hash}"
        return hashlib.sha256(hash_input.encode("utf-8")).hexdigest()

    def create_log_entry(
        self,
        session: Session,
        action: str,
        description: str,
        actor_id: str,
    ) -> AuditLog:
        last_log = session.exec(
            select(AuditLog)
            .order_by(AuditLog.id.desc())
            .limit(1)
        ).first()

        previous_hash = last_log.current_hash if last_log else "first"
        timestamp = datetime.now(timezone.utc)

        log = AuditLog(
            action=action,
            time_stamp=timestamp,
            description=description,
            actor_id=str(actor_id),
            previous_hash=previous_hash,
            current_hash=self._hash(action, timestamp, description, str(actor_id), previous_hash),
        )

        session.add(log)
        session.commit()
        logger.info("%s: %s", action, description)
        return log

    def verify_log_integrity(self, log: AuditLog, expected_previous_hash: str) -> bool:
        if log.previous_hash != expected_previous_hash:
            return False
        recalculated = self._hash(log.action, log.time_stamp, log.description, log.actor_id, expected_previous_hash)
        return recalculated == log.current_hash

    def get_logs(self, *, session: Session, actor_id: str) -> tuple[list[AuditLog], list[int]]:
        """Return the audit chain and the ids of entries whose links do not verify."""
        logs = session.exec(select(AuditLog).order_by(AuditLog.id)).all()

        tampered = []
        previous_hash = "first"
        for log in logs:
            if not self.verify_log_integrity(log, previous_hash):
                tampered.append(log.id)
            previous_hash = log.current_hash

        if tampered:
            logger.warning("Audit chain mismatch at entries %s", tampered)

        self.create_log_entry(
            session=session,
            action="AUDIT_LOG_ACCESSED",
            description=f"User {actor_id} retrieved {len(logs)} audit entries",
            actor_id=actor_id,
        )
        return list(logs), tampered
