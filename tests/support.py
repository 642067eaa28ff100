"""
Shared fixtures for the test modules: an in-memory database, sample payloads and drafts.
"""
import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (register tables)
from database import Base, enable_sqlite_savepoints
from models import User
from services.auth import hash_password
from services.documents import DocumentRef, DocumentSlot, DocumentSlotSet
from services.draft import ApplicationDraft, Declaration, GeneralInfo, PayOrderDetails
from services.education import EducationEntry, EducationEntryList

PASSWORD = "correct-horse"


async def make_database():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    return engine, factory


async def create_user(session: AsyncSession, email: str = None, role: str = "applicant", password: str = PASSWORD) -> User:
    user = User(
        id=str(uuid.uuid4()),
        email=email or f"user-{uuid.uuid4().hex[:6]}@example.com",
        password_hash=hash_password(password),
        role=role,
    )
    session.add(user)
    await session.flush()
    return user


def complete_documents() -> DocumentSlotSet:
    docs = DocumentSlotSet()
    for slot in DocumentSlot:
        if slot is DocumentSlot.PASSPORT_PHOTO:
            docs = docs.set_slot(
                slot,
                DocumentRef(url="https://files.example.com/photo-1.jpg", size_bytes=150_000, mime_type="image/jpeg"),
                DocumentRef(url="https://files.example.com/photo-2.jpg", size_bytes=150_000, mime_type="image/jpeg"),
            )
        else:
            docs = docs.set_slot(
                slot,
                DocumentRef(url=f"https://files.example.com/{slot.value}.pdf", size_bytes=400_000, mime_type="application/pdf"),
            )
    return docs


def complete_draft(**general) -> ApplicationDraft:
    """Every section filled, one degree, all five slots, pay order 5000 attested."""
    info = {
        "applicant_type": "General",
        "full_name": "John Doe",
        "nid": "1234567890123",
        "tin": "123456789012",
        "bin": None,
        "address": "123 Main St, Dhaka",
        "date_of_birth": date(1990, 1, 1),
        "nationality": "Bangladeshi",
        "cell_number": "01712345678",
        "email": "john@example.com",
    }
    info.update(general)
    return ApplicationDraft(
        general_info=GeneralInfo(**info),
        education=EducationEntryList(entries=(
            EducationEntry(
                degree_name="B.Com",
                achievement_year=2015,
                educational_institute="Dhaka University",
                grade="First Class",
            ),
        )),
        documents=complete_documents(),
        pay_order=PayOrderDetails(
            amount=5000,
            pay_order_number="PO123456",
            issue_date=date(2025, 11, 15),
            bank_name="Sonali Bank",
            branch_name="Motijheel",
            issued_to=True,
        ),
        declaration=Declaration(designation="VAT Consultant", agreed=True),
    )


def complete_payload() -> dict:
    """The same application as sent by the web form (camelCase JSON)."""
    return {
        "generalInfo": {
            "applicantType": "General",
            "fullName": "John Doe",
            "nid": "1234567890123",
            "tin": "123456789012",
            "bin": "",
            "address": "123 Main St, Dhaka",
            "dateOfBirth": "1990-01-01",
            "nationality": "Bangladeshi",
            "cellNumber": "01712345678",
            "email": "john@example.com",
        },
        "education": [
            {
                "degreeName": "B.Com",
                "achievementYear": 2015,
                "educationalInstitute": "Dhaka University",
                "grade": "First Class",
                "specialAchievement": "",
            }
        ],
        "documents": {
            "secondaryCertificate": "https://files.example.com/ssc.pdf",
            "highestCertificate": "https://files.example.com/bcom.pdf",
            "nidCopy": {"url": "https://files.example.com/nid", "mimeType": "image/png", "size": 90_000},
            "payOrder": "https://files.example.com/pay-order.jpg",
            "passportPhotos": [
                "https://files.example.com/photo-1.jpg",
                "https://files.example.com/photo-2.jpg",
            ],
        },
        "payOrder": {
            "amount": 5000,
            "payOrderNumber": "PO123456",
            "date": "2025-11-15",
            "bankName": "Sonali Bank",
            "branchName": "Motijheel",
            "issuedTo": True,
        },
        "declaration": {"designation": "VAT Consultant", "agreed": True},
    }
