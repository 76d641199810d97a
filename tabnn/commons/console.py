import warnings
from rich.console import Console
from rich.theme import Theme
from tqdm import TqdmExperimentalWarning

warnings.filterwarnings("ignore", category=TqdmExperimentalWarning)

custom_theme = Theme({"info_title": "khaki1", "info_text": "bold grey85", "warn_text": "bold magenta italic"})
console = Console(theme=custom_theme)
