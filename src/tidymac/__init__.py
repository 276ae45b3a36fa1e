"""tidymac - safe macOS disk cleanup engine."""

__version__ = "0.1.0"
