"""
Admin review: start review, approve with license issuance, return with reason.
Run from project root: python -m pytest tests/test_review.py -v
"""
import unittest
from datetime import date

from sqlalchemy import func, select, update

from models import Applicant, Application, License
from services.errors import AuthorizationError, InvalidTransitionError, MissingReasonError, NotFoundError, StaleStatusError
from services.licensing import expiry_for, issue_license
from services.review import approve_application, return_application, start_review
from services.submission import submit_application
from support import complete_draft, create_user, make_database


class TestReview(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_database()
        self.session = self.Session()
        self.admin = await create_user(self.session, "officer@nbr.gov.bd", role="admin")
        self.applicant_user = await create_user(self.session, "john@example.com")
        self.app = await submit_application(self.session, complete_draft().snapshot(), self.applicant_user)
        await self.session.commit()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def _license_count(self):
        result = await self.session.execute(select(func.count()).select_from(License))
        return result.scalar_one()

    async def test_approve_issues_one_license(self):
        app, issued = await approve_application(self.session, self.app.id, self.admin)
        await self.session.commit()

        self.assertEqual(app.status, "approved")
        self.assertEqual(app.reviewed_by, self.admin.id)
        self.assertIsNotNone(app.decided_at)
        self.assertEqual(await self._license_count(), 1)
        self.assertEqual(issued.application_id, app.id)
        self.assertEqual(issued.holder_name, "John Doe")
        self.assertEqual(issued.nid, "1234567890123")
        self.assertEqual(issued.expiry_date, expiry_for(issued.issue_date))
        self.assertEqual(issued.license_number, f"C{issued.issue_date.year}01")

    async def test_approve_after_review_started(self):
        reviewing = await start_review(self.session, self.app.id, self.admin)
        self.assertEqual(reviewing.status, "under_review")
        self.assertIsNotNone(reviewing.review_started_at)
        app, _ = await approve_application(self.session, self.app.id, self.admin)
        self.assertEqual(app.status, "approved")

    async def test_approved_application_cannot_be_approved_again(self):
        await approve_application(self.session, self.app.id, self.admin)
        with self.assertRaises(InvalidTransitionError):
            await approve_application(self.session, self.app.id, self.admin)
        self.assertEqual(await self._license_count(), 1)

    async def test_return_then_approve_rejected(self):
        app = await return_application(self.session, self.app.id, self.admin, "Incomplete documents")
        await self.session.commit()
        self.assertEqual(app.status, "returned")
        self.assertEqual(app.return_reason, "Incomplete documents")

        with self.assertRaises(InvalidTransitionError):
            await approve_application(self.session, self.app.id, self.admin)
        self.assertEqual(await self._license_count(), 0)

    async def test_return_needs_reason(self):
        with self.assertRaises(MissingReasonError):
            await return_application(self.session, self.app.id, self.admin, "  ")
        refreshed = await self.session.get(Application, self.app.id)
        self.assertEqual(refreshed.status, "submitted")

    async def test_applicants_cannot_decide(self):
        with self.assertRaises(AuthorizationError):
            await approve_application(self.session, self.app.id, self.applicant_user)
        with self.assertRaises(AuthorizationError):
            await return_application(self.session, self.app.id, self.applicant_user, "No")

    async def test_unknown_application(self):
        with self.assertRaises(NotFoundError):
            await start_review(self.session, "missing", self.admin)

    async def test_status_changed_underneath(self):
        # Another admin returned it after this session read "submitted"
        await self.session.execute(
            update(Application)
            .where(Application.id == self.app.id)
            .values(status="returned")
            .execution_options(synchronize_session=False)
        )
        self.assertEqual(self.app.status, "submitted")
        with self.assertRaises(StaleStatusError):
            await approve_application(self.session, self.app.id, self.admin)
        self.assertEqual(await self._license_count(), 0)


class TestLicenseNumbers(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine, self.Session = await make_database()
        self.session = self.Session()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def test_sequence_per_issue_year(self):
        issued = []
        for n, issue_date in enumerate((date(2025, 3, 1), date(2025, 11, 19), date(2026, 1, 5))):
            user = await create_user(self.session)
            draft = complete_draft(email=f"holder{n}@example.com", full_name=f"Holder {n}")
            app = await submit_application(self.session, draft.snapshot(), user)
            applicant = await self.session.get(Applicant, app.applicant_id)
            issued.append(await issue_license(self.session, app, applicant, issue_date))
        self.assertEqual([lic.license_number for lic in issued], ["C202501", "C202502", "C202601"])
        self.assertEqual(issued[1].expiry_date, date(2030, 11, 19))


if __name__ == "__main__":
    unittest.main()
