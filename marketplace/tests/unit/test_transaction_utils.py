from unittest.mock import MagicMock, patch

import pytest
from django.db import OperationalError

from utils.transaction_utils import DeadlockError, is_deadlock, retry_on_deadlock


@pytest.mark.unit
class TestRetryOnDeadlockUnit:
    def test_is_deadlock(self):
        assert is_deadlock(OperationalError(1213, "Deadlock found when trying to get lock"))
        assert is_deadlock(OperationalError("database is locked"))
        assert is_deadlock(OperationalError("database table is locked: marketplace_listing"))
        assert not is_deadlock(OperationalError("no such table: marketplace_listing"))

    @patch("utils.transaction_utils.time.sleep")
    def test_retries_until_success(self, mock_sleep):
        operation = MagicMock(side_effect=[OperationalError("Deadlock found"), OperationalError("1205"), "done"])
        operation.__name__ = "reserve"
        wrapped = retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0)(operation)

        assert wrapped() == "done"
        assert operation.call_count == 3
        assert [call.args[0] for call in mock_sleep.call_args_list] == [0.1, 0.2]

    @patch("utils.transaction_utils.time.sleep")
    def test_gives_up_after_max_retries(self, mock_sleep):
        operation = MagicMock(side_effect=OperationalError("Deadlock found"))
        operation.__name__ = "reserve"
        wrapped = retry_on_deadlock(max_retries=2)(operation)

        with pytest.raises(DeadlockError):
            wrapped()
        assert operation.call_count == 3

    @patch("utils.transaction_utils.time.sleep")
    def test_other_operational_errors_are_not_retried(self, mock_sleep):
        operation = MagicMock(side_effect=OperationalError("disk I/O error"))
        wrapped = retry_on_deadlock()(operation)

        with pytest.raises(OperationalError):
            wrapped()
        assert operation.call_count == 1
        mock_sleep.assert_not_called()

    def test_business_errors_pass_through(self):
        operation = MagicMock(side_effect=ValueError("bad"))
        wrapped = retry_on_deadlock()(operation)

        with pytest.raises(ValueError):
            wrapped()
        assert operation.call_count == 1
