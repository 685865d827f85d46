"""Board URL helpers."""

BOARD_SUFFIX = ".json"
RUN_SUFFIX = ".api/run"


def board_to_endpoint(board: str) -> str:
    """Derive the run endpoint of a board.

    `https://host/boards/chat.json` becomes `https://host/boards/chat.api/run`.
    URLs that do not end in `.json` are returned unchanged.
    """
    if board.endswith(BOARD_SUFFIX):
        return board[: -len(BOARD_SUFFIX)] + RUN_SUFFIX
    return board
