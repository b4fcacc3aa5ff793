"""stagerunner: run a declared list of CI stages inside one provisioned environment."""

__version__ = "0.1.0"
