"""
bbrun Proxy.

Request-forwarding shim for a board:
- GET renders a page that loads the board's chat frontend
- POST forwards the run request with the board key injected as `$key`
  and streams the board API response back verbatim

The key stays on the server; browsers only ever see the proxy.
"""
