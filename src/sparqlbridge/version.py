"""Version information for sparqlbridge."""

VERSION = "0.1.0"
