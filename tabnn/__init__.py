from .errors import (
    ColumnTypeAmbiguous,
    ConfigError,
    LoadError,
    MissingColumn,
    ShapeMismatch,
    TabnnError,
    UnsupportedFormat,
    ValueNotInVocabulary,
)
from .modules.layers import LayerConfig
from .models.network.config import NeuralNetworkConfig, load_config_from_yaml
from .models.network.network import NeuralNetwork
