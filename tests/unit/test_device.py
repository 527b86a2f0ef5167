"""Tests for user-agent device and browser classification."""

import pytest

from shortbot.services.device import classify_browser, classify_device

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
EDGE_WINDOWS = CHROME_WINDOWS + " Edg/120.0.2210.91"
OPERA_WINDOWS = CHROME_WINDOWS + " OPR/106.0.0.0"
FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"
SAFARI_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_2) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Safari/605.1.15"
)
IPHONE_SAFARI = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
IPAD_SAFARI = (
    "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
ANDROID_PHONE = (
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
ANDROID_TABLET = (
    "Mozilla/5.0 (Linux; Android 13; SM-X700) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
GOOGLEBOT = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
GOOGLEBOT_SMARTPHONE = (
    "Mozilla/5.0 (Linux; Android 6.0.1; Nexus 5X Build/MMB29P) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36 "
    "(compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
)


class TestClassifyDevice:
    """Device category detection."""

    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (GOOGLEBOT, "Bot"),
            (IPHONE_SAFARI, "Mobile"),
            (CHROME_WINDOWS, "Desktop"),
            (ANDROID_PHONE, "Mobile"),
            (ANDROID_TABLET, "Tablet"),
            (IPAD_SAFARI, "Tablet"),
            (FIREFOX_LINUX, "Desktop"),
            ("curl/8.4.0", "Desktop"),
        ],
    )
    def test_known_user_agents(self, user_agent, expected):
        assert classify_device(user_agent) == expected

    def test_bot_wins_over_mobile(self):
        """Crawlers with a smartphone UA are still bots."""
        assert classify_device(GOOGLEBOT_SMARTPHONE) == "Bot"

    @pytest.mark.parametrize("user_agent", ["", None, "   "])
    def test_empty_user_agent_is_unknown(self, user_agent):
        assert classify_device(user_agent) == "Unknown"

    def test_case_insensitive(self):
        assert classify_device("SOME-SPIDER/1.0") == "Bot"
        assert classify_device("my IPHONE app") == "Mobile"


class TestClassifyBrowser:
    """Browser family detection."""

    @pytest.mark.parametrize(
        "user_agent,expected",
        [
            (CHROME_WINDOWS, "Chrome"),
            (EDGE_WINDOWS, "Edge"),
            (OPERA_WINDOWS, "Opera"),
            (FIREFOX_LINUX, "Firefox"),
            (SAFARI_MAC, "Safari"),
            (IPHONE_SAFARI, "Safari"),
            (ANDROID_PHONE, "Chrome"),
            ("curl/8.4.0", "Other"),
        ],
    )
    def test_known_user_agents(self, user_agent, expected):
        assert classify_browser(user_agent) == expected

    @pytest.mark.parametrize("user_agent", ["", None])
    def test_empty_user_agent_is_unknown(self, user_agent):
        assert classify_browser(user_agent) == "Unknown"
