from .logger import create_logger, get_level_number, get_main_logger

__all__ = ["create_logger", "get_main_logger", "get_level_number"]
