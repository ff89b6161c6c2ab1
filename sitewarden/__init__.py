"""Time-limited website blocking with iptables: a sniffing daemon and a client to add domains."""

__version__ = "0.1.0"