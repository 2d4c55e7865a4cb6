"""
Retry, transaction and sanitization helper tests
"""
import pytest
from sqlalchemy.exc import OperationalError

from app import db
from app.errors import NotFound
from app.models import Job
from app.utils.retry import retry_call
from app.utils.sanitize import sanitize_dict
from app.utils.transactions import atomic


def _locked():
    return OperationalError('UPDATE jobs', {}, Exception('database is locked'))


class TestRetryCall:

    def test_returns_first_success(self, app):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError('reset')
            return 'ok'

        assert retry_call(flaky, retry_on=(ConnectionError,)) == 'ok'
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, app):
        calls = []

        def down():
            calls.append(1)
            raise ConnectionError('reset')

        with pytest.raises(ConnectionError):
            retry_call(down, attempts=2, retry_on=(ConnectionError,))
        assert len(calls) == 2

    def test_predicate_stops_retries(self, app):
        calls = []

        def rejected():
            calls.append(1)
            raise ValueError('bad request')

        with pytest.raises(ValueError):
            retry_call(rejected, retry_on=(ValueError,), should_retry=lambda e: False)
        assert len(calls) == 1

    def test_unlisted_errors_propagate(self, app):
        def broken():
            raise KeyError('x')

        with pytest.raises(KeyError):
            retry_call(broken, retry_on=(ConnectionError,))


class TestAtomic:

    def test_commits_work(self, app, customer):
        def work():
            job = Job(created_by_uid=customer.id, customer_uid=customer.id, status='open', issue_type='tire')
            db.session.add(job)
            return job

        job = atomic(work)

        db.session.expire_all()
        assert db.session.get(Job, job.id) is not None

    def test_domain_errors_roll_back_without_retry(self, app, customer):
        calls = []

        def work():
            calls.append(1)
            db.session.add(Job(created_by_uid=customer.id, status='open', issue_type='tire'))
            raise NotFound()

        with pytest.raises(NotFound):
            atomic(work)
        assert len(calls) == 1
        assert Job.query.count() == 0

    def test_transient_errors_retried(self, app):
        calls = []

        def work():
            calls.append(1)
            if len(calls) == 1:
                raise _locked()
            return 'done'

        assert atomic(work) == 'done'
        assert len(calls) == 2

    def test_transient_errors_exhaust(self, app):
        calls = []

        def work():
            calls.append(1)
            raise _locked()

        with pytest.raises(OperationalError):
            atomic(work)
        # DB_TRANSACTION_RETRIES is 2 in testing
        assert len(calls) == 3


class TestSanitize:

    def test_nested_strings_escaped(self):
        data = {'notes': '<b>hi</b>', 'tags': ['a&b'], 'amount': 5, 'flag': True, 'none': None}

        assert sanitize_dict(data) == {
            'notes': '&lt;b&gt;hi&lt;/b&gt;',
            'tags': ['a&amp;b'],
            'amount': 5,
            'flag': True,
            'none': None,
        }
