import os
from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from lawbook.core.config import GatewaySettings  # noqa: E402
from lawbook.database import Base  # noqa: E402
from lawbook.models.appointment import Appointment  # noqa: E402
from lawbook.models.lawyer import Lawyer  # noqa: E402
from lawbook.models.time_slot import TimeSlot  # noqa: E402
from lawbook.models.user import ROLE_LAWYER, User  # noqa: E402

TABLES = [User.__table__, Lawyer.__table__, TimeSlot.__table__, Appointment.__table__]


@pytest.fixture
def booking_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def lawyer_factory(booking_db):
    def make_lawyer(email: str = 'jane@lawbook.test', full_name: str = 'Jane Doe', price=Decimal('1500.00')) -> Lawyer:
        user = User(email=email, full_name=full_name, role=ROLE_LAWYER)
        booking_db.add(user)
        booking_db.commit()
        booking_db.refresh(user)

        lawyer = Lawyer(
            user_id=user.id,
            slug=email.split('@', 1)[0],
            specialization='Family law',
            consultation_price=price,
        )
        booking_db.add(lawyer)
        booking_db.commit()
        booking_db.refresh(lawyer)
        return lawyer

    return make_lawyer


@pytest.fixture
def lawyer(lawyer_factory) -> Lawyer:
    return lawyer_factory()


@pytest.fixture
def slot_factory(booking_db, lawyer):
    def make_slot(
        start_time: time = time(10, 0),
        end_time: time = time(11, 0),
        slot_date: date = date(2030, 1, 7),
        is_available: bool = True,
        lawyer_id: str | None = None,
    ) -> TimeSlot:
        slot = TimeSlot(
            lawyer_id=lawyer_id or lawyer.id,
            date=slot_date,
            start_time=start_time,
            end_time=end_time,
            is_available=is_available,
        )
        booking_db.add(slot)
        booking_db.commit()
        booking_db.refresh(slot)
        return slot

    return make_slot


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        merchant_id='74730556',
        integrity_code='secret',
        test_mode='0',
        currency_code='RUB',
        amount='10.00',
        base_url='https://lawbook.test',
        gateway_url='https://payanyway.ru/assistant.htm',
    )
