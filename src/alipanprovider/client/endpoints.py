"""Remote API endpoint paths."""

from __future__ import annotations

ACCESS_TOKEN_PATH: str = "/v2/account/token"
USER_GET_PATH: str = "/v2/user/get"

FILE_GET_PATH: str = "/v2/file/get"
FILE_LIST_PATH: str = "/adrive/v3/file/list"
FILE_SEARCH_PATH: str = "/adrive/v3/file/search"
DOWNLOAD_URL_PATH: str = "/v2/file/get_download_url"
CREATE_WITH_FOLDERS_PATH: str = "/adrive/v2/file/createWithFolders"
COMPLETE_PATH: str = "/v2/file/complete"
TRASH_PATH: str = "/v2/recyclebin/trash"

CHECK_NAME_MODE: str = "overwrite"
