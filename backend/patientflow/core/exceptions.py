"""Workflow error taxonomy.

Every failure surfaced by the workflow core is a ``WorkflowError``. The HTTP
layer maps each class to a status code via ``status_code``.
"""


class WorkflowError(Exception):
    """Base class for all patient workflow failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(WorkflowError):
    """A referenced record does not exist."""

    status_code = 404


class EpisodeNotFoundError(NotFoundError):
    def __init__(self, episode_number: str) -> None:
        super().__init__(f"Episode not found: {episode_number}")
        self.episode_number = episode_number


class PatientNotFoundError(NotFoundError):
    def __init__(self, patient_id: int) -> None:
        super().__init__(f"Patient not found: {patient_id}")
        self.patient_id = patient_id


class BillingRecordNotFoundError(NotFoundError):
    def __init__(self, billing_id: int) -> None:
        super().__init__(f"Billing record not found: {billing_id}")
        self.billing_id = billing_id


# ---------------------------------------------------------------------------
# Precondition not met
# ---------------------------------------------------------------------------

class WorkflowPreconditionError(WorkflowError):
    """The episode is not in a state that allows the requested step."""

    status_code = 409


class ConsultationFeeNotPaidError(WorkflowPreconditionError):
    def __init__(self, episode_number: str) -> None:
        super().__init__(f"Consultation fee not paid for episode {episode_number}")
        self.episode_number = episode_number


class ConsultationFeeAlreadyPaidError(WorkflowPreconditionError):
    def __init__(self, episode_number: str) -> None:
        super().__init__(f"Consultation fee already paid for episode {episode_number}")
        self.episode_number = episode_number


class EpisodeClosedError(WorkflowPreconditionError):
    def __init__(self, episode_number: str) -> None:
        super().__init__(f"Episode {episode_number} is already completed")
        self.episode_number = episode_number


class ActiveEpisodeExistsError(WorkflowPreconditionError):
    def __init__(self, patient_id: int, episode_number: str) -> None:
        super().__init__(
            f"Patient {patient_id} already has an active episode: {episode_number}"
        )
        self.patient_id = patient_id
        self.episode_number = episode_number


class UnsupportedServiceError(WorkflowPreconditionError):
    def __init__(self, kind: str) -> None:
        super().__init__(f"Unsupported service kind: {kind}")
        self.kind = kind


class EpisodeNumberExhaustedError(WorkflowPreconditionError):
    def __init__(self, prefix: str) -> None:
        super().__init__(f"Could not allocate a free {prefix} episode number, retry shortly")
        self.prefix = prefix


# ---------------------------------------------------------------------------
# Concurrency and upstream failures
# ---------------------------------------------------------------------------

class EpisodeConflictError(WorkflowError):
    """Another writer updated the episode since it was read."""

    status_code = 409

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation}: episode was modified concurrently")
        self.operation = operation


class UpstreamServiceError(WorkflowError):
    """A collaborator (record store, billing, patient registry) failed."""

    status_code = 502
