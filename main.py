from rich.pretty import pprint

from commandant import *

__prog__ = "demo"


if __name__ == '__main__':
    listing = sh("ls -la %s", "a directory; rm -rf ~", console=True, colorful=True).timeout(5)
    pprint(listing)
    pprint(listing.combined_output())
    pprint(listing)
