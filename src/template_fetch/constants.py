"""Shared constants for the aippt.cn acquisition flow."""

import re

SITE_KEY = "aippt.cn"

BROWSER_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
)

# Login UI markers.
LOGIN_REGISTER_LABEL = "登录 ｜ 注册"
LOGIN_TEXT = "登录"
REGISTER_TEXT = "注册"
SWITCH_TO_PASSWORD_SELECTOR = 'div.dialog-login-change-btn .text:has-text("切换账号密码登录")'
ACCOUNT_FIELD_SELECTOR = "#custom-validation_account"
PASSWORD_FIELD_SELECTOR = "#custom-validation_password"
SUBMIT_BUTTON_SELECTOR = 'button.ant-btn.ant-btn-primary[type="submit"]'
SUBMIT_LABEL = "登 录"

# Download UI markers.
DOWNLOAD_LABEL = "立即下载"
DOWNLOAD_TRACK_ATTRIBUTE = ("data-track-event", "dl_template_down_id")
DOWNLOAD_CLASS_FALLBACKS = ("bg-gradient-primary-lr", "ml-3")

DEFAULT_FILENAME = "aippt-download"
TEMP_DIR_PREFIX = "aippt-"
STATE_FILE_NAME = "aippt_storage.json"

ATTACHMENT_RE = re.compile(r"attachment", flags=re.IGNORECASE)
FILE_URL_RE = re.compile(r"\.(ppt|pptx|zip|rar|7z|pdf)(\?.*)?$", flags=re.IGNORECASE)
DISPOSITION_EXTENDED_RE = re.compile(r"filename\*=UTF-8''([^;]+)", flags=re.IGNORECASE)
DISPOSITION_PLAIN_RE = re.compile(r"filename=\"?([^\";]+)\"?", flags=re.IGNORECASE)

REQUIRED_CREDENTIAL_VARS = ("AIPPT_USERNAME", "AIPPT_PASSWORD")
