from fastapi import Request

from brandpulse.services.llm import SentimentClassifier
from brandpulse.services.synthesizer import MentionSynthesizer
from brandpulse.storage.base import Storage


# Collaborators are built once by create_app() and live on app.state
def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_classifier(request: Request) -> SentimentClassifier:
    return request.app.state.classifier


def get_synthesizer(request: Request) -> MentionSynthesizer:
    return request.app.state.synthesizer
