from colorlog import ColoredFormatter
from colorlog.escape_codes import escape_codes
from datetime import datetime, UTC


class Formatter(ColoredFormatter):
  """
  Colors each package logger by the part of the swarm it speaks for, so a
  turn's routing, connection and streaming lines can be told apart at a glance.
  Loggers without a color of their own are grey.
  """

  GREY = "\033[38;5;245m"
  YELLOW = "\033[33m"
  RESET = "\033[0m"

  LOGGER_COLORS = {
    "router": "cyan",
    "mentions": "cyan",
    "registry": "blue",
    "client": "green",
    "factory": "purple",
    "session": "yellow",
  }

  def __init__(self, *args, logger_colors=None, **kwargs):
    kwargs.setdefault("datefmt", "%Y-%m-%dT%H:%M:%S.%fZ")
    super().__init__(*args, **kwargs)
    colors = dict(self.LOGGER_COLORS, **(logger_colors or {}))
    self.logger_colors = {name: escape_codes[color] for name, color in colors.items()}

  def format(self, record):
    if record.levelname == "WARNING":
      record.levelname = f"{self.YELLOW} WARN{self.RESET}"
    return super().format(record)

  def formatTime(self, record, datefmt=None) -> str:
    try:
      dt = datetime.fromtimestamp(record.created, UTC)
      if datefmt:
        return dt.strftime(datefmt)
      return super().formatTime(record, datefmt)
    except Exception:
      # during interpreter shutdown the time cannot always be formatted
      return f"{record.created}"

  def logger_color(self, name: str) -> str:
    return self.logger_colors.get(name.split(".")[0], self.GREY)

  def formatMessage(self, record) -> str:
    try:
      record.name = f"{self.logger_color(record.name)}{record.name}{self.RESET}"
      record.asctime = f"{self.GREY}{self.formatTime(record, self.datefmt)}{self.RESET}"
      return super().formatMessage(record)
    except Exception:
      return record.message
