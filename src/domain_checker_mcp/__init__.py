"""
Domain Checker MCP Server

An MCP server for checking domain name availability over RDAP and WHOIS.
"""

__version__ = "0.2.0"


def main():
    """Main entry point for the CLI."""
    import sys

    # Handle CLI arguments before importing heavy dependencies
    if "--help" in sys.argv or "-h" in sys.argv:
        print_help()
        sys.exit(0)

    if "--version" in sys.argv or "-V" in sys.argv:
        print(f"domain-checker-mcp {__version__}")
        sys.exit(0)

    if "--show-config" in sys.argv:
        show_config()
        sys.exit(0)

    # Default: run the MCP server
    from .server import mcp
    mcp.run()


def print_help():
    """Print help message."""
    print(f"""domain-checker-mcp {__version__}

An MCP server for checking domain name availability (RDAP first, WHOIS fallback).

Usage:
    domain-checker-mcp                Run the MCP server (stdio)
    domain-checker-mcp --show-config  Show effective lookup configuration
    domain-checker-mcp --version      Show version
    domain-checker-mcp --help         Show this help

Configuration:
    No API keys are required. Lookup tuning can be overridden with
    environment variables or a JSON config file:

    DOMAIN_CHECKER_MAX_RETRIES=3
    DOMAIN_CHECKER_INITIAL_DELAY=1.0
    DOMAIN_CHECKER_BACKOFF_MULTIPLIER=2.0
    DOMAIN_CHECKER_RDAP_TIMEOUT=10
    DOMAIN_CHECKER_WHOIS_TIMEOUT=10
    DOMAIN_CHECKER_DEBUG=1            Verbose HTTP logging

Claude Code Setup:
    Add to ~/.claude/settings.json:
    {{
      "mcpServers": {{
        "domain-checker": {{
          "command": "uvx",
          "args": ["domain-checker-mcp"]
        }}
      }}
    }}
""")


def show_config():
    """Show current configuration."""
    from .config import describe_config, get_config_file, get_lookup_config

    print("Configuration")
    print("=" * 50)
    print()

    config_file = get_config_file()
    print(f"Config file: {config_file}")
    print(f"  Exists: {config_file.exists()}")
    print()

    for name, value in describe_config(get_lookup_config()).items():
        print(f"{name}: {value}")
