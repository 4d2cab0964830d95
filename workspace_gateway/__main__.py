"""
Run the gateway: python -m workspace_gateway
"""

from workspace_gateway.api.server import main

main()
