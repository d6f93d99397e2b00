"""
Modeling layer for normalization, training, inference and persistence.

Provides the min/max normalizer, the fixed Keras regression network,
its trainer and predictor, and the versioned model artifact store.
"""
