"""HTTP API for operations that need server-side secrets."""
