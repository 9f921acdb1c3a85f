from devalyze.utils.config.env import Settings, settings
