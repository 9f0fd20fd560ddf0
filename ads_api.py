from google.ads.googleads.client import GoogleAdsClient
from google.ads.googleads.errors import GoogleAdsException
from google.api_core.exceptions import GoogleAPIError
import grpc
from decimal import Decimal
import logging

from errors import FetchError
from services.anomaly_detection_service.models import ManagedAccount, ReportRow, WEEKDAYS

MICROS_PER_UNIT = Decimal(1000000)


def _clean_customer_id(customer_id):
    return str(customer_id).replace('-', '').strip()


class GoogleAdsAPI:
    def __init__(self, config, client=None):
        """
        Initialize Google Ads API client for a manager (MCC) account.

        Args:
            config (dict): Configuration dictionary with Google Ads credentials
            client (GoogleAdsClient, optional): Pre-built client, used instead of the credentials
        """
        self.client = client or GoogleAdsClient.load_from_dict({
            'client_id': config['client_id'],
            'client_secret': config['client_secret'],
            'developer_token': config['developer_token'],
            'refresh_token': config['refresh_token'],
            'login_customer_id': config['login_customer_id'],
            'use_proto_plus': True,
        })
        self.manager_customer_id = _clean_customer_id(config['login_customer_id'])

    def _search_stream(self, customer_id, query):
        """
        Run a GAQL query and yield result rows one by one.

        Errors raised while the stream is being consumed are reported as FetchError too.
        """
        ga_service = self.client.get_service("GoogleAdsService")
        try:
            stream = ga_service.search_stream(customer_id=customer_id, query=query)
            for batch in stream:
                for row in batch.results:
                    yield row
        except GoogleAdsException as ex:
            error_message = f"Google Ads API error: Request with ID '{ex.request_id}' failed with status '{ex.error.code().name}'"
            if ex.failure:
                error_message += f": {ex.failure.errors[0].message}"
            logging.error(error_message)
            raise FetchError(error_message)
        except (grpc.RpcError, GoogleAPIError) as ex:
            # transport failures (UNAVAILABLE, DEADLINE_EXCEEDED) arrive as raw gRPC errors
            error_message = f"Google Ads transport error for customer {customer_id}: {ex}"
            logging.error(error_message)
            raise FetchError(error_message)

    def get_manager_time_zone(self):
        """
        Get the time zone of the manager account.

        Returns:
            str: IANA time zone name, e.g. 'America/New_York'
        """
        query = "SELECT customer.id, customer.time_zone FROM customer LIMIT 1"
        for row in self._search_stream(self.manager_customer_id, query):
            return row.customer.time_zone
        raise FetchError(f"Manager account {self.manager_customer_id} returned no customer row")

    def _find_label(self, label):
        escaped = label.replace("\\", "\\\\").replace("'", "\\'")
        query = f"SELECT label.resource_name, label.name FROM label WHERE label.name = '{escaped}'"
        for row in self._search_stream(self.manager_customer_id, query):
            return row.label.resource_name
        return None

    def list_child_accounts(self, label=None, limit=50):
        """
        Yield the client accounts directly under the manager account, ordered by id.

        Args:
            label (str, optional): Only accounts carrying this manager label
            limit (int): Maximum number of accounts to yield

        Yields:
            ManagedAccount: one handle per child account
        """
        where_clause = "customer_client.level = 1 AND customer_client.manager = FALSE"
        if label:
            label_resource = self._find_label(label)
            if label_resource is None:
                logging.warning(f"Label '{label}' not found in manager account {self.manager_customer_id}; no accounts selected")
                return
            where_clause += f" AND customer_client.applied_labels CONTAINS ANY ('{label_resource}')"

        query = f"""
            SELECT
                customer_client.id,
                customer_client.descriptive_name,
                customer_client.currency_code,
                customer_client.time_zone
            FROM customer_client
            WHERE {where_clause}
            ORDER BY customer_client.id
            LIMIT {int(limit)}
        """
        logging.info(f"Listing up to {limit} child accounts{' with label ' + label if label else ''}")
        for row in self._search_stream(self.manager_customer_id, query):
            client = row.customer_client
            yield ManagedAccount(
                customer_id=str(client.id),
                name=client.descriptive_name,
                currency_code=client.currency_code,
                time_zone=client.time_zone,
            )

    def iter_hourly_stats(self, customer_id, start_date, end_date, day_of_week=None):
        """
        Stream hourly account statistics for a date range.

        Args:
            customer_id (str): Account to report on
            start_date (date): First day, inclusive
            end_date (date): Last day, inclusive
            day_of_week (str, optional): Restrict to one weekday, e.g. 'MONDAY'

        Yields:
            ReportRow: one row per hour and day with data
        """
        if start_date > end_date:
            raise ValueError(f"start_date {start_date} is after end_date {end_date}")

        where_clause = (
            f"segments.date BETWEEN '{start_date.strftime('%Y-%m-%d')}' "
            f"AND '{end_date.strftime('%Y-%m-%d')}'"
        )
        if day_of_week:
            day_of_week = day_of_week.upper()
            if day_of_week not in WEEKDAYS:
                raise ValueError(f"day_of_week must be one of {', '.join(WEEKDAYS)}, got '{day_of_week}'")
            where_clause += f" AND segments.day_of_week = '{day_of_week}'"

        query = f"""
            SELECT
                segments.hour,
                segments.day_of_week,
                metrics.clicks,
                metrics.impressions,
                metrics.conversions,
                metrics.cost_micros
            FROM customer
            WHERE {where_clause}
        """
        customer_id = _clean_customer_id(customer_id)
        logging.debug(f"Fetching hourly stats for {customer_id}: {where_clause}")
        for row in self._search_stream(customer_id, query):
            try:
                yield ReportRow(
                    hour_of_day=row.segments.hour,
                    day_of_week=row.segments.day_of_week.name,
                    clicks=row.metrics.clicks,
                    impressions=row.metrics.impressions,
                    conversions=repr(float(row.metrics.conversions)),
                    cost=str(Decimal(row.metrics.cost_micros) / MICROS_PER_UNIT),
                )
            except AttributeError as ae:
                raise FetchError(f"Malformed report row for account {customer_id}: {ae}")
