import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")
os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")

from datetime import datetime  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from clinicflow.auth import AuthContext, create_access_token  # noqa: E402
from clinicflow.database import Base, get_db  # noqa: E402
from clinicflow.main import app  # noqa: E402
from clinicflow.models import (  # noqa: E402
    Appointment,
    AppointmentStatus,
    Clinic,
    Payment,
    PaymentStatus,
    Service,
    User,
    UserRole,
)
from clinicflow.security_utils import hash_password  # noqa: E402

TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


class Factory:
    """Creates rows directly in the test database"""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def clinic(self, name: str = "ClinicFlow Medical Center") -> Clinic:
        clinic = Clinic(name=name, address="123 Healthcare Ave", phone="1234567890", email="contact@clinicflow.com")
        self.db.add(clinic)
        self.db.commit()
        return clinic

    def service(
        self,
        clinic: Clinic,
        name: str = "General Consultation",
        duration: int = 30,
        price: str = "50.00",
    ) -> Service:
        service = Service(name=name, price=Decimal(price), duration=duration, clinic_id=clinic.id)
        self.db.add(service)
        self.db.commit()
        return service

    def user(self, role: str, clinic: Clinic | None = None, first_name: str = "Test") -> User:
        n = self._next()
        user = User(
            username=f"{role.lower()}{n}",
            password=TEST_PASSWORD_HASH,
            first_name=first_name,
            last_name=f"User{n}",
            email=f"{role.lower()}{n}@example.com",
            phone=f"555000{n:04d}",
            role=role,
            clinic_id=clinic.id if clinic else None,
        )
        self.db.add(user)
        self.db.commit()
        return user

    def doctor(self, clinic: Clinic) -> User:
        return self.user(UserRole.DOCTOR, clinic)

    def admin(self, clinic: Clinic) -> User:
        return self.user(UserRole.CLINIC_ADMIN, clinic)

    def client(self) -> User:
        return self.user(UserRole.CLIENT)

    def super_admin(self) -> User:
        return self.user(UserRole.SUPER_ADMIN)

    def appointment(
        self,
        service: Service,
        doctor: User,
        client: User,
        start: datetime,
        status: str = AppointmentStatus.SCHEDULED,
        end: datetime | None = None,
    ) -> Appointment:
        from datetime import timedelta

        appointment = Appointment(
            client_id=client.id,
            doctor_id=doctor.id,
            service_id=service.id,
            clinic_id=service.clinic_id,
            start_time=start,
            end_time=end or start + timedelta(minutes=service.duration),
            status=status,
        )
        self.db.add(appointment)
        self.db.commit()
        return appointment

    def payment(
        self,
        appointment: Appointment,
        amount: str,
        paid_at: datetime | None = None,
        status: str = PaymentStatus.COMPLETED,
    ) -> Payment:
        payment = Payment(
            appointment_id=appointment.id, amount=Decimal(amount), status=status, paid_at=paid_at
        )
        self.db.add(payment)
        self.db.commit()
        return payment


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def world(factory):
    """One clinic with an admin, two doctors, a client and a 30 minute service"""
    clinic = factory.clinic()
    return {
        "clinic": clinic,
        "service": factory.service(clinic),
        "admin": factory.admin(clinic),
        "doctor": factory.doctor(clinic),
        "doctor2": factory.doctor(clinic),
        "client": factory.client(),
    }


def ctx(user: User) -> AuthContext:
    return AuthContext.for_user(user)


@pytest.fixture
def api(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}
