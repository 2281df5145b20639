# utils/logging_config.py
import os
import sys

from loguru import logger

import config

_configured = False


def configure_logging() -> None:
     """
     Install the application log sinks.

     stderr always; rotating files under LOG_DIR when LOG_TO_FILE is on.
     Payment and webhook records are routed by the `log_type` extra.
     """
     global _configured
     if _configured:
          return

     # Remove default handler
     logger.remove()
     logger.add(
          sys.stderr,
          level=config.LOG_LEVEL,
          format="{time} | {level} | {message}",
     )

     if config.LOG_TO_FILE:
          os.makedirs(config.LOG_DIR, exist_ok=True)

          # General application log
          logger.add(
               f"{config.LOG_DIR}/app.log",
               rotation="1 week",
               retention="4 weeks",
               level=config.LOG_LEVEL,
               enqueue=True,
               format="{time} | {level} | {message}",
          )

          # Invoice creation / lookup against Xendit
          logger.add(
               f"{config.LOG_DIR}/payments.log",
               rotation="1 week",
               retention="4 weeks",
               level="INFO",
               enqueue=True,
               filter=lambda record: record["extra"].get("log_type") == "payment",
               format="{time} | {level} | {message}",
          )

          # Xendit callbacks and reconciliation outcomes
          logger.add(
               f"{config.LOG_DIR}/webhooks.log",
               rotation="1 week",
               retention="4 weeks",
               level="INFO",
               enqueue=True,
               filter=lambda record: record["extra"].get("log_type") == "webhook",
               format="{time} | {level} | {message}",
          )

          logger.add(
               f"{config.LOG_DIR}/errors.log",
               rotation="1 week",
               retention="8 weeks",
               level="ERROR",
               enqueue=True,
          )

     _configured = True


def get_logger(log_type: str = None):
     if log_type:
          return logger.bind(log_type=log_type)
     return logger
