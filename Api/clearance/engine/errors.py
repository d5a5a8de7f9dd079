class RuleViolation(Exception):
    """Base class for transitions refused by the clearance rules."""


class InvalidTransition(RuleViolation):
    def __init__(self, record_id, current: str, target: str):
        self.record_id = record_id
        self.current = current
        self.target = target
        super().__init__(f"Cannot move requirement {record_id} from '{current}' to '{target}'")


class SignatureLocked(RuleViolation):
    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(
            f"Student {student_id} holds an active clearance permit; signatures cannot be undone"
        )


class NotFullyCleared(RuleViolation):
    def __init__(self, student_id: str, pending_requirement_ids: list[int]):
        self.student_id = student_id
        self.pending_requirement_ids = pending_requirement_ids
        if pending_requirement_ids:
            detail = f"{len(pending_requirement_ids)} requirement(s) not signed"
        else:
            detail = "no requirements assigned"
        super().__init__(f"Student {student_id} is not fully cleared: {detail}")
