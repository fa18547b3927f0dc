from feedbox.api import FeedbackController

ROUTES = [
    FeedbackController,
]
