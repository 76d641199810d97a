from .activation import StableMax, build_activation
from .layers import LayerConfig, build_layer, create_conv2d_layer, create_dense_layer
from .losses import CategoricalCrossEntropy, build_loss
