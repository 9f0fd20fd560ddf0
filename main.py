import argparse
import logging
import sys

from config import load_config, validate_config
from errors import ConfigurationError, FetchError
from logger import setup_logging


def build_run_service(config, logger):
    """Wire the services for one alerting run"""
    from ads_api import GoogleAdsAPI
    from services import (
        AccountMonitorService,
        AlertRunService,
        AlertStateService,
        AnomalyDetectionService,
        EmailNotificationService,
        ReportingService,
    )

    ads_api = GoogleAdsAPI(config['google_ads'])
    reporting = ReportingService(config['tracking']['workbook_path'], config)
    alert_state = AlertStateService(reporting, config)
    monitor = AccountMonitorService(ads_api, AnomalyDetectionService(config), alert_state, reporting, config)
    notifier = EmailNotificationService(config)

    time_zone = config['alerts']['timezone'] or ads_api.get_manager_time_zone()
    logger.info(f"Using time zone {time_zone}")
    return AlertRunService(ads_api, reporting, alert_state, monitor, notifier, time_zone, config)


def run_once(config, logger):
    """Run one alerting pass with a freshly opened tracking workbook"""
    validate_config(config)
    service = build_run_service(config, logger)
    return service.run()


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(description="Google Ads account anomaly detector")
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('run', help='Check all accounts once')

    schedule_parser = subparsers.add_parser('schedule', help='Check all accounts every hour')
    schedule_parser.add_argument('--minute', type=int, default=5, help='Minute past the hour to run (0-59)')

    init_parser = subparsers.add_parser('init-workbook', help='Create an empty tracking workbook')
    init_parser.add_argument('path', help='Where to write the .xlsx file')

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_arguments(argv)

    try:
        config = load_config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logging.error(f"Configuration error: {e}")
        return 2
    logger = setup_logging(config['logging']['log_dir'], config['logging']['level'])

    if args.command == 'init-workbook':
        from services.reporting_service import ReportingService
        ReportingService.create_template(args.path)
        logger.info(f"Tracking workbook written to {args.path}. Fill in the email and thresholds, "
                    "then set TRACKING_WORKBOOK_PATH to it.")
        return 0

    if args.command == 'run':
        try:
            blocks = run_once(config, logger)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            return 2
        except FetchError as e:
            logger.error(f"Google Ads request failed: {e}")
            return 1
        logger.info(f"Done, {len(blocks)} account(s) alerted")
        return 0

    from scheduler import AlertScheduler
    try:
        validate_config(config)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    AlertScheduler(lambda: run_once(config, logger), minute=args.minute, logger=logger).run_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
