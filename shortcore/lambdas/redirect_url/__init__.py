from shortcore.utils import initialize_logging


initialize_logging()
