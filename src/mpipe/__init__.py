__version__ = "0.1.0"

from .core import AskLLM, AskRequest, run_ask  # noqa: E402
from .errors import MpipeError  # noqa: E402
from .providers import Provider  # noqa: E402

__all__ = ['AskLLM', 'AskRequest', 'run_ask', 'MpipeError', 'Provider', '__version__']
