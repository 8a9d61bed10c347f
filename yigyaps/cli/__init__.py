"""The ``yigyaps`` developer command line."""
