"""Built-in capability plugins."""

from switchboard.extensions import CapabilityPlugin
from switchboard.plugins.data_analysis import DataAnalysisPlugin
from switchboard.plugins.text_analysis import TextAnalysisPlugin
from switchboard.plugins.weather import WeatherPlugin
from switchboard.plugins.webhook import WebhookPlugin

BUILTIN_PLUGINS: list[CapabilityPlugin] = [
    WeatherPlugin(),
    DataAnalysisPlugin(),
    TextAnalysisPlugin(),
    WebhookPlugin(),
]

__all__ = [
    "BUILTIN_PLUGINS",
    "DataAnalysisPlugin",
    "TextAnalysisPlugin",
    "WeatherPlugin",
    "WebhookPlugin",
]
