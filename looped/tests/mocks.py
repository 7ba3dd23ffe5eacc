class FakeMessage:
    def __init__(self, content: str):
        self.content = content


class FakeChoice:
    def __init__(self, content: str):
        self.message = FakeMessage(content)


class FakeCompletion:
    def __init__(self, content: str):
        self.choices = [FakeChoice(content)]


class FakeCompletions:
    def __init__(self, owner: "FakeGroq"):
        self.owner = owner

    def create(self, *args, **kwargs):
        self.owner.calls.append(kwargs)
        if self.owner.error is not None:
            raise self.owner.error
        if len(self.owner.replies) > 1:
            return FakeCompletion(self.owner.replies.pop(0))
        return FakeCompletion(self.owner.replies[0])


class FakeChat:
    def __init__(self, owner: "FakeGroq"):
        self.completions = FakeCompletions(owner)


class FakeGroq:
    """
    Stand-in for groq.Groq.

    Pass the instance as a client factory: calling it records the
    constructor kwargs and returns itself. Replies are served in order,
    the last one repeats.
    """

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or ["Nice work today. Try a two-minute stretch next."])
        self.error = error
        self.calls = []
        self.init_kwargs = []
        self.chat = FakeChat(self)

    def __call__(self, **kwargs):
        self.init_kwargs.append(kwargs)
        return self
