"""
Logging configuration for the EV charging console.
Console output, with an optional JSON formatter for log shipping.
"""

import logging
import logging.config
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from evcharge.config import settings
from evcharge.utils import utcnow

class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, level and environment fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = utcnow().isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = settings.ENVIRONMENT

LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        },
        'json': {
            '()': CustomJsonFormatter,
            'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
        },
    },
    'handlers': {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'json' if settings.LOG_FORMAT == 'json' else 'standard'
        },
    },
    'loggers': {
        'evcharge': {
            'handlers': ['console'],
            'level': settings.LOG_LEVEL,
            'propagate': False
        },
        'sqlalchemy.engine': {
            'handlers': ['console'],
            'level': 'WARNING',
            'propagate': False
        },
    }
}

def setup_logging():
    """Configure application logging"""
    logging.config.dictConfig(LOGGING_CONFIG)
    logger = logging.getLogger("evcharge")
    logger.info(f"Logging initialized with level: {settings.LOG_LEVEL}")
    return logger
