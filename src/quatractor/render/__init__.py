"""Point aggregation, blur, normalisation and image output."""

from quatractor.render.renderer import ImageConfig, ImageRenderer, Statistics
