"""
Infrastructure Layer

Default adapters for the domain gateways: socket and TLS probes, PowerShell
remoting and the ActiveDirectory module.
"""
