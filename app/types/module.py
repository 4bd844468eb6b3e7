from fastapi import APIRouter


class CoreModule:
    def __init__(
        self,
        root: str,
        tag: str,
        router: APIRouter | None = None,
    ):
        """
        Initialize a new CoreModule object.
        :param root: the root of the module, used to identify it
        :param tag: the tag of the module, used by FastAPI to group endpoints in the documentation
        :param router: an optional custom APIRouter
        """
        self.root = root
        self.tag = tag
        self.router = router or APIRouter(tags=[tag])


class Module(CoreModule):
    """
    Feature modules are discovered from `app/modules/*/endpoints_*.py`.
    They may be disabled without breaking the core of the application.
    """
