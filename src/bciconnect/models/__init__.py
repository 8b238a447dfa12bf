"""Pretrained P300 model coefficients shipped with the package."""
