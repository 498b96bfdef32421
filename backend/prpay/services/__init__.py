# Services Package
# Submodules are imported directly (prpay.services.tools, prpay.services.ai, ...)
