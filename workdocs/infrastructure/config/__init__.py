"""Configuration loading (environment, .env and YAML) and static catalogues."""
