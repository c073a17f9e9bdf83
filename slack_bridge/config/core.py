import os

from slack_bridge.errors import ConfigurationError

from .loader import section

_DEFAULT_CONVERSATION_TYPES = "public_channel,private_channel,mpim,im"


class Core:
    def __init__(self, config: dict | None = None) -> None:
        slack_cfg = section(config, "slack")

        token_env = str(slack_cfg.get("token_env", "SLACK_BOT_TOKEN"))

        self.SLACK_BOT_TOKEN: str | None = os.getenv(token_env)

        # users.list / conversations.list page size; Slack caps this at 1000
        self.PAGE_SIZE: int = int(slack_cfg.get("page_size", os.getenv("SLACK_PAGE_SIZE", "100")))
        self.CONVERSATION_TYPES: str = str(
            slack_cfg.get(
                "conversation_types",
                os.getenv("SLACK_CONVERSATION_TYPES", _DEFAULT_CONVERSATION_TYPES),
            )
        )
        # Load every workspace member into the host user store on startup
        self.SYNC_USERS: bool = str(
            slack_cfg.get("sync_users", os.getenv("SLACK_USER_SYNC", "0"))
        ).lower() in ("1", "true", "yes")

        required = [
            (token_env, self.SLACK_BOT_TOKEN),
        ]
        missing = [name for name, val in required if not val]
        if missing:
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")
        if self.PAGE_SIZE < 1:
            raise ConfigurationError("page_size must be >= 1")
