"""Battery threshold monitor app for AppDaemon."""
