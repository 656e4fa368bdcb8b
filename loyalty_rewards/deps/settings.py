from fastapi import Request

from loyalty_rewards.config import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
