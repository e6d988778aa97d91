import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'

# These loggers print full request URLs, and the provider URL carries the api key.
_QUIET_LOGGERS = ('httpx', 'httpcore')


def setup_logging(level: str = 'INFO') -> None:
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger('moth_egg_detector').setLevel(resolved)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
