import itertools

import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool
from fastapi.testclient import TestClient
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization

from clearance.main import app
from clearance.clients.errors import CollaboratorError
from clearance.core.deps import get_db, get_permit_client, get_sms_client
from clearance.core.security import create_access_token
from clearance.core.settings import settings
from clearance.models.Permit import Permit, PermitStatus
from clearance.models.RequirementDefinition import RequirementDefinition
from clearance.models.Student import Student
from clearance.models.StudentRequirement import RequirementStatus, StudentRequirement


class FakePermitClient:
    """Stands in for the external permit/QR service."""

    def __init__(self):
        self.permits: dict[str, Permit] = {}
        self.unreachable = False
        self.issued: list[str] = []
        self.revoked: list[str] = []
        self._ids = itertools.count(1)

    def grant(self, student_id: str) -> Permit:
        permit_id = f"permit-{next(self._ids)}"
        permit = Permit(id=permit_id, student_id=student_id, permit_code=f"QR-{permit_id}", status=PermitStatus.ACTIVE)
        self.permits[permit_id] = permit
        return permit

    async def check_by_school_id(self, school_id: str) -> Permit | None:
        if self.unreachable:
            raise CollaboratorError("Failed to check student permit", 503)
        for permit in self.permits.values():
            if permit.student_id == school_id and permit.is_active:
                return permit
        return None

    async def issue(self, student_id: str, issued_by: str) -> Permit:
        if self.unreachable:
            raise CollaboratorError("Failed to generate permit", 503)
        self.issued.append(student_id)
        return self.grant(student_id)

    async def revoke(self, permit_id: str) -> Permit:
        if self.unreachable:
            raise CollaboratorError("Failed to revoke permit", 503)
        permit = self.permits[permit_id].model_copy(update={"status": PermitStatus.REVOKED})
        self.permits[permit_id] = permit
        self.revoked.append(permit_id)
        return permit


class FakeSmsClient:

    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send_bulk(self, phone_numbers: list[str], message: str) -> tuple[int, list[str]]:
        for phone in phone_numbers:
            self.sent.append((phone, message))
        return len(phone_numbers), []


@pytest.fixture(scope="session", autouse=True)
def setup_keys():
    # Generate global keys for tests
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )
    public_key = private_key.public_key()

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )

    settings.PRIVATE_KEY = private_pem.decode()
    settings.PUBLIC_KEY = public_pem.decode()


@pytest.fixture(autouse=True)
def default_flags():
    sweep_on_read, auto_issue = settings.SWEEP_ON_READ, settings.AUTO_ISSUE_PERMITS
    settings.SWEEP_ON_READ = True
    settings.AUTO_ISSUE_PERMITS = False
    yield
    settings.SWEEP_ON_READ, settings.AUTO_ISSUE_PERMITS = sweep_on_read, auto_issue


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="permit_client")
def permit_client_fixture():
    return FakePermitClient()


@pytest.fixture(name="sms_client")
def sms_client_fixture():
    return FakeSmsClient()


@pytest.fixture(name="client")
def client_fixture(session: Session, permit_client: FakePermitClient, sms_client: FakeSmsClient):
    def get_db_override():
        yield session

    app.dependency_overrides[get_db] = get_db_override
    app.dependency_overrides[get_permit_client] = lambda: permit_client
    app.dependency_overrides[get_sms_client] = lambda: sms_client
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def auth_headers(user_id: str, role: str, school_id: str | None = None) -> dict:
    claims = {"sub": user_id, "role": role}
    if school_id:
        claims["school_id"] = school_id
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture(name="admin_headers")
def admin_headers_fixture():
    return auth_headers("admin-1", "admin")


@pytest.fixture(name="library_headers")
def library_headers_fixture():
    return auth_headers("lib-1", "library")


@pytest.fixture(name="dean_headers")
def dean_headers_fixture():
    return auth_headers("dean-1", "dean")


@pytest.fixture(name="cashier_headers")
def cashier_headers_fixture():
    return auth_headers("cash-1", "cashier")


@pytest.fixture(name="student_headers")
def student_headers_fixture():
    return auth_headers("stu-user-1", "student", school_id="S-001")


def add_student(session: Session, school_id: str, department: str = "CCS", **extra) -> Student:
    student = Student(
        school_id=school_id,
        first_name="Test",
        last_name=school_id,
        department=department,
        **extra,
    )
    session.add(student)
    session.commit()
    session.refresh(student)
    return student


def add_requirement(session: Session, owner_id: str = "lib-1", owner_role: str = "library", **extra) -> RequirementDefinition:
    values = dict(
        user_id=owner_id,
        owner_role=owner_role,
        scope="institutional",
        institutional_name="Library",
        semester="1st",
        requirements=["Return borrowed books"],
    )
    values.update(extra)
    requirement = RequirementDefinition(**values)
    session.add(requirement)
    session.commit()
    session.refresh(requirement)
    return requirement


def add_record(
    session: Session,
    student_id: str,
    requirement: RequirementDefinition,
    status: RequirementStatus = RequirementStatus.INCOMPLETE,
) -> StudentRequirement:
    record = StudentRequirement(
        student_id=student_id,
        co_id=requirement.user_id,
        requirement_id=requirement.id,
        signed_by=requirement.owner_role,
        status=status.value,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record
