"""
connectors — upstream identity connectors.

Provides a connector framework that handles:
  • OAuth2 login-URL generation
  • Callback handling (code → token → Identity)
  • Refresh of previously resolved identities
  • Org / team based authorization and group claims

Each provider is a subclass of BaseConnector.
"""
