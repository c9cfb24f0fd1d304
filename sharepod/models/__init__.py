from sharepod.models.share import FileKind, SharedFile, ShareRecord  # noqa: F401
