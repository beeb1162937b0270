"""VDF templates for SteamPipe build configuration."""

# VDF Template for SteamPipe builds
VDF_TEMPLATE = '''\"AppBuild\"
{{
    \"AppID\" \"{app_id}\"
    \"Desc\" \"{description}\"
{set_live}    \"BuildOutput\" \"BuildOutput/\"
    \"ContentRoot\" \"{content_root}\"
    \"Depots\"
    {{
{depots}
    }}
}}
'''

DEPOT_TEMPLATE = '''        \"{depot_id}\"
        {{
            \"FileMapping\"
            {{
                \"LocalPath\" \"*\"
                \"DepotPath\" \".\"
                \"recursive\" \"1\"
            }}
{exclusions}        }}'''

SET_LIVE_TEMPLATE = '''    \"SetLive\" \"{branch}\"\n'''

FILE_EXCLUSION_TEMPLATE = '''            \"FileExclusion\" \"{pattern}\"\n'''
