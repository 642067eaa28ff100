"""
Submission pipeline and reconciliation against an in-memory SQLite database.
Run from project root: python -m pytest tests/test_submission.py -v
"""
import unittest
from unittest import mock

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql

from models import Applicant, Application, DocumentAttachment, EducationRecord, PendingWrite
from services import submission
from services.draft import SetGeneralInfo, reduce_draft
from services.errors import ActiveApplicationError, SubmissionError
from services.reconciliation import replay_pending_writes
from services.submission import submit_application
from support import complete_draft, create_user, make_database

_build_education_rows = submission.build_education_rows
_build_document_rows = submission.build_document_rows
_ensure_no_active_application = submission.ensure_no_active_application


async def _count(session, model, *where):
    result = await session.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


def _education_without_degree(*args):
    rows = _build_education_rows(*args)
    rows[0].degree_name = None  # NOT NULL
    return rows


def _documents_without_url(*args):
    rows = _build_document_rows(*args)
    rows[0].file_url = None  # NOT NULL
    return rows


class TestSubmissionPipeline(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_database()
        self.session = self.Session()
        self.user = await create_user(self.session, "john@example.com")
        await self.session.commit()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def test_complete_draft_submits(self):
        app = await submit_application(self.session, complete_draft().snapshot(), self.user)
        await self.session.commit()

        self.assertEqual(app.status, "submitted")
        self.assertTrue(app.application_number.startswith("APP-"))
        self.assertIsNotNone(app.submitted_at)
        self.assertEqual(await _count(self.session, Applicant), 1)
        self.assertEqual(await _count(self.session, EducationRecord, EducationRecord.application_id == app.id), 1)
        # four single slots plus two bundled passport photos
        self.assertEqual(await _count(self.session, DocumentAttachment, DocumentAttachment.application_id == app.id), 6)
        self.assertEqual(await _count(self.session, PendingWrite), 0)

    async def test_one_applicant_per_account(self):
        first = await submit_application(self.session, complete_draft().snapshot(), self.user)
        first.status = "returned"
        await self.session.flush()
        renamed = reduce_draft(complete_draft(), SetGeneralInfo(values={"full_name": "John Q. Doe"}))
        second = await submit_application(self.session, renamed.snapshot(), self.user)
        await self.session.commit()

        self.assertNotEqual(first.id, second.id)
        self.assertNotEqual(first.application_number, second.application_number)
        self.assertEqual(first.applicant_id, second.applicant_id)
        self.assertEqual(await _count(self.session, Applicant), 1)
        applicant = await self.session.get(Applicant, second.applicant_id)
        self.assertEqual(applicant.full_name, "John Q. Doe")

    async def test_active_application_blocks_resubmission(self):
        await submit_application(self.session, complete_draft().snapshot(), self.user)
        with self.assertRaises(ActiveApplicationError):
            await submit_application(self.session, complete_draft().snapshot(), self.user)

    async def test_database_keeps_one_active_application(self):
        await submit_application(self.session, complete_draft().snapshot(), self.user)
        await self.session.commit()

        # A racing request that read "no active application" before the first one committed
        checks = []

        async def stale_first_check(session, user_id):
            checks.append(user_id)
            if len(checks) > 1:
                await _ensure_no_active_application(session, user_id)

        with mock.patch.object(submission, "ensure_no_active_application", stale_first_check):
            with self.assertRaises(ActiveApplicationError):
                await submit_application(self.session, complete_draft().snapshot(), self.user)
        self.assertEqual(len(checks), 2)
        self.assertEqual(await _count(self.session, Application), 1)

    def test_submissions_lock_the_account_row(self):
        statement = str(submission.account_lock("user-1").compile(dialect=postgresql.dialect()))
        self.assertIn("FOR UPDATE", statement)
        self.assertIn("users", statement)

    async def test_general_applicant_malformed_bin_not_stored(self):
        draft = complete_draft(applicant_type="General", bin="12345678901234567890")
        app = await submit_application(self.session, draft.snapshot(), self.user)
        applicant = await self.session.get(Applicant, app.applicant_id)
        self.assertIsNone(applicant.bin)

    async def test_well_formed_bins_are_stored(self):
        draft = complete_draft(applicant_type="General", bin="1234567890123")
        app = await submit_application(self.session, draft.snapshot(), self.user)
        applicant = await self.session.get(Applicant, app.applicant_id)
        self.assertEqual(applicant.bin, "1234567890123")

    async def test_document_failure_is_queued_not_raised(self):
        with mock.patch.object(submission, "build_document_rows", _documents_without_url):
            app = await submit_application(self.session, complete_draft().snapshot(), self.user)
        await self.session.commit()

        self.assertEqual(app.status, "submitted")
        self.assertEqual(await _count(self.session, DocumentAttachment), 0)
        self.assertEqual(await _count(self.session, EducationRecord), 1)
        pending = (await self.session.execute(select(PendingWrite))).scalar_one()
        self.assertEqual(pending.kind, "documents")
        self.assertEqual(pending.application_id, app.id)
        self.assertEqual(len(pending.payload), 6)

        report = await replay_pending_writes(self.session)
        await self.session.commit()
        self.assertEqual(report.resolved, 1)
        self.assertEqual(await _count(self.session, DocumentAttachment, DocumentAttachment.application_id == app.id), 6)
        await self.session.refresh(pending)
        self.assertIsNotNone(pending.resolved_at)
        self.assertEqual(pending.attempts, 2)

    async def test_education_failure_is_linked_to_application(self):
        with mock.patch.object(submission, "build_education_rows", _education_without_degree):
            app = await submit_application(self.session, complete_draft().snapshot(), self.user)
        await self.session.commit()

        self.assertEqual(app.status, "submitted")
        pending = (await self.session.execute(select(PendingWrite))).scalar_one()
        self.assertEqual(pending.kind, "education")
        self.assertEqual(pending.application_id, app.id)
        self.assertEqual(await _count(self.session, EducationRecord), 0)
        self.assertEqual(await _count(self.session, DocumentAttachment), 6)

        await replay_pending_writes(self.session)
        await self.session.commit()
        self.assertEqual(await _count(self.session, EducationRecord, EducationRecord.application_id == app.id), 1)

    async def test_application_failure_rolls_back_everything(self):
        with mock.patch.object(submission, "generate_application_number", return_value=None):
            with self.assertRaises(SubmissionError) as ctx:
                await submit_application(self.session, complete_draft().snapshot(), self.user)
        self.assertEqual(str(ctx.exception), "Failed to create application")

        self.assertEqual(await _count(self.session, Applicant), 0)
        self.assertEqual(await _count(self.session, Application), 0)
        self.assertEqual(await _count(self.session, EducationRecord), 0)
        self.assertEqual(await _count(self.session, PendingWrite), 0)


if __name__ == "__main__":
    unittest.main()
