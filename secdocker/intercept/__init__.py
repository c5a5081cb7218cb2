"""Rewriting of intercepted Docker API requests and connection listeners."""