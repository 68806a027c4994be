"""WalletGuard: recipient risk screening and send workflow for wallet transfers."""

__version__ = "1.0.0"
