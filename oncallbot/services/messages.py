# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: reply text. Usage per operation and the generic error strings,
decorated with the configured emoji and admin mention.
"""


class Messages:
    def __init__(
        self,
        command: str = "/oncall",
        input_error_emoji: str = ":exclamation:",
        external_error_emoji: str = ":negative_squared_cross_mark:",
        admin_sub_team_id: str = "",
    ) -> None:
        self.human_emoji = input_error_emoji
        self.external_emoji = external_error_emoji
        admin = f"<!subteam^{admin_sub_team_id}|@admin>" if admin_sub_team_id else "@admin"

        self.no_permission = f"Sorry! you can't do that {input_error_emoji}"
        self.external = f"Unexpected error occurred, please contact {admin} {external_error_emoji}"
        self.no_rotation = f"On-call list not set {input_error_emoji}"
        self.no_manager = f"Manager not set {input_error_emoji}"
        self.no_phone = f"Phone not set {input_error_emoji}"

        self._usage: dict[str, str] = {
            "list": (
                f"`{command} list`\n\tDisplay list of teams and their managers\n"
                f"`{command} list {{team}}`\n\tDisplay on-call list for _team_"
            ),
            "add": (
                f"`{command} add {{team}} {{@slackusername}} {{label}}`\n"
                "\tAdd _@slackusername_ to on-call list for _team_ with optional _label_"
            ),
            "remove": (
                f"`{command} remove {{team}} {{@slackusername}}`\n"
                "\tRemove _@slackusername_ from on-call list for _team_"
            ),
            "swap": (
                f"`{command} swap {{team}} {{position_a}} {{position_b}}`\n"
                "\tSwap _position_a_ and _position_b_ in the on-call list for _team_"
            ),
            "flush": (
                f"`{command} flush {{team}}`\n\tFlush the entire on-call list for _team_"
            ),
            "register": (
                f"`{command} register {{team}} {{@slackusername}}`\n"
                "\tRegister a new _team_ with _@slackusername_ as it's manager"
            ),
            "unregister": (
                f"`{command} unregister {{team}} {{@slackusername}}`\n"
                "\tUnregister _team_ from oncall command, or remove _@slackusername_ "
                "from _team_ manager list"
            ),
            "update": f"`{command} update`\n\tUpdate your Slack profile",
        }

    def usage(self, operation: str = "") -> str:
        """Usage for one operation, or for all of them."""
        if operation in self._usage:
            return "Usage:\n" + self._usage[operation]
        return "Usage:\n" + "\n".join(self._usage.values())

    def human(self, text: str) -> str:
        return f"{text} {self.human_emoji}"
