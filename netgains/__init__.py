"""Net Gains backend: session/group invitations and threaded discussions."""
