"""
Logging Configuration

Rotating file logs under LOG_DIR:
    app.log       general application messages
    error.log     exceptions with context
    access.log    one line per /api/ request and response
    auth.log      register/login/logout attempts
    workflow.log  order, delivery, cash, settlement and wallet state changes

Sentry receives errors when SENTRY_DSN is set.
"""
import logging
import logging.handlers
import os
import traceback
from datetime import datetime

import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from config import Config, BASE_DIR

SENTRY_DSN = os.environ.get('SENTRY_DSN')
SENTRY_ENABLED = bool(SENTRY_DSN)
if SENTRY_ENABLED:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            FlaskIntegration(),
            # breadcrumbs from INFO, events from ERROR
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', 0.1)),
        environment=Config.ENV,
        send_default_pii=False,
    )

LOG_DIR = os.environ.get('LOG_DIR', os.path.join(BASE_DIR, 'logs'))
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_LEVEL = getattr(logging, os.environ.get('LOG_LEVEL', '').upper(), None) or (
    logging.DEBUG if Config.ENV == 'development' else logging.INFO
)

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 30


def _handlers(log_file, level):
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    file_handler = logging.handlers.RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding='utf-8',
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    yield file_handler

    if Config.ENV == 'development':
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        yield console_handler


def setup_logger(name, log_file, level=LOG_LEVEL):
    """
    Return the `jordanmarket.<name>` logger writing to LOG_DIR/<log_file>

    Handlers are attached once per process; later calls reuse them.
    """
    logger = logging.getLogger(f'jordanmarket.{name}')
    logger.setLevel(level)
    if not logger.handlers:
        for handler in _handlers(log_file, level):
            logger.addHandler(handler)
    return logger


app_logger = setup_logger('app', 'app.log')
error_logger = setup_logger('error', 'error.log', logging.ERROR)
access_logger = setup_logger('access', 'access.log', logging.INFO)
auth_logger = setup_logger('auth', 'auth.log', logging.INFO)
workflow_logger = setup_logger('workflow', 'workflow.log', logging.INFO)


def mask_email(email):
    """'lina@example.com' -> 'li**@example.com'"""
    if not email:
        return None
    local, _, domain = email.partition('@')
    masked = local[:2] + '*' * max(len(local) - 2, 0)
    return f"{masked}@{domain}" if domain else masked


def log_auth_event(event_type, success, identifier=None, user_id=None, role=None, ip_address=None, error=None):
    """
    Record a register/login/logout attempt in auth.log

    The email is masked; failures are logged at WARNING.
    """
    fields = {
        'event_type': event_type,
        'success': success,
        'identifier': mask_email(identifier),
        'user_id': user_id,
        'role': role,
        'ip_address': ip_address,
        'error': str(error) if error else None,
    }
    message = ' '.join(f"{key}={value}" for key, value in fields.items() if value is not None)

    if success:
        auth_logger.info(f"auth {message}")
    else:
        auth_logger.warning(f"auth failed {message}")


def log_workflow_event(entity, entity_id, action, actor_id=None, **details):
    """
    Record a committed state change, e.g.
    log_workflow_event('order', 12, 'placed', actor_id=3, total='22.00')
    """
    parts = [f"{entity}#{entity_id}", action]
    if actor_id is not None:
        parts.append(f"by={actor_id}")
    parts.extend(f"{key}={value}" for key, value in details.items())
    workflow_logger.info(' '.join(parts))


def log_error_with_context(error, context=None, level=logging.ERROR):
    """
    Write an exception (or message) with its context and traceback to error.log
    and forward exceptions to Sentry
    """
    log_data = {
        'error_type': type(error).__name__,
        'error_message': str(error),
        'timestamp': datetime.utcnow().isoformat(),
    }
    if context:
        log_data['context'] = context
    if isinstance(error, Exception) and error.__traceback__ is not None:
        log_data['traceback'] = ''.join(traceback.format_exception(type(error), error, error.__traceback__))

    error_logger.log(level, f"Error: {log_data}")

    if SENTRY_ENABLED and isinstance(error, Exception):
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context('jordanmarket', context)
            scope.set_tag('error_type', log_data['error_type'])
            sentry_sdk.capture_exception(error)
