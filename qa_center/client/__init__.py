"""Python client for the QA console API."""
from qa_center.client.api import QAClient, ApiError, MalformedResponseError, DEFAULT_RATES, describe_run_result
from qa_center.client.export import daily_usage_to_csv, csv_data_uri, usage_report_filename
from qa_center.client.media import ActiveMediaRegistry
from qa_center.client.session import SessionContext, should_show_low_balance, low_balance_notice

__all__ = [
    "QAClient",
    "ApiError",
    "MalformedResponseError",
    "DEFAULT_RATES",
    "describe_run_result",
    "daily_usage_to_csv",
    "csv_data_uri",
    "usage_report_filename",
    "ActiveMediaRegistry",
    "SessionContext",
    "should_show_low_balance",
    "low_balance_notice",
]
