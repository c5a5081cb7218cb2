# secdocker

secdocker checks Docker container requests against a policy written in YAML.
A request is refused if it uses a forbidden port, mount, environment variable,
user, image or security option. A request that passes gets your general
settings added to it. These can be a fixed user, memory and CPU limits, extra
environment variables and Linux capabilities.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Configuration

The `secdocker` command reads `config.yml` from the current directory:

```yaml
dockerapi: http://localhost
plugins:
  - notary
general:
  secopts: [no-new-privileges]
  capdrop: [NET_RAW]
  capadd: [CHOWN]
  memory: 1g
  cpu: "0.25"
  environment:
    - MY_ENV=true
  user: "1000"
restrictions:
  ports: ["8080", "3000"]
  mounts: ["/root"]
  users: ["root"]
  environment: ["USER=0"]
  securitypolicies: ["privileged"]
  images: []
  privileged: true
```

Notes on the restrictions:

- A request is refused if any of its ports, mounts, environment entries, user,
  image or security options appears in the matching list. Every violation is
  logged.
- A request is also refused when its privileged flag equals the `privileged`
  value. Requests from the command line are never privileged, so with
  `privileged: false` every command-line request is refused.
- The general `environment` entries replace variables of the same name in a
  request.

## Usage

`secdocker` wraps `docker run`:

```
secdocker run -p 8080:80 -v /srv/data:/data nginx
```

It collects the restricted options from the arguments:

- ports come from `-p`/`-P`;
- mounts come from `-v`/`--volume`, host side only;
- environment entries come from `-e`;
- the user comes from `-u`/`--user`;
- the entrypoint comes from `--entrypoint`;
- the image is the first value that belongs to no option.

Options may also be written as `-p=8080:80`.

If the options pass the policy, it runs `docker` with the general settings
inserted after the subcommand, plus `-d`. It prints docker's combined output.
If they do not pass, it logs an error and exits with status 1. Fewer than two
arguments print a usage line.

Image plugins are not run from the command line.

## Image plugins

`secdocker.docker.process_api_create_request` passes the image to every plugin
listed under `plugins`, then checks the policy. Each plugin reads its own
settings from `<plugins_dir>/<name>/config.yml`. The default `plugins_dir` is
`./plugins`. If a name is unknown, `secdocker.plugins.registry.UnknownPluginError`
is raised. If any plugin rejects the image, the request is refused.

- **anchore** (`secdocker.plugins.anchore.AnchorePlugin`) sends the image to an
  Anchore Engine and polls until its analysis status is `analyzed`. It refuses
  the image if the number of vulnerabilities is above `amountvulns`. If the
  connection is refused, the image is allowed.

  ```yaml
  url: http://localhost:8228
  username: admin
  password: password
  amountvulns: 10
  ```

- **notary** (`secdocker.plugins.notary.NotaryPlugin`) runs
  `/bin/bash <scriptpath> <name> <tag>`. The tag defaults to `latest`.
  - Exit code 0 allows the image.
  - Exit code 2 (image not present locally) allows the image.
  - Any other unexpected code allows the image and is logged.
  - Exit code 1 refuses the image.
  - An image name with more than one `:` is refused.

  ```yaml
  scriptpath: ./plugins/notary/check.sh
  ```

## As a library

- `secdocker.config.load_config(path)` reads a policy file.
  `secdocker.config.parse_config(text)` reads one from text.
- `secdocker.security.check_permissions(opts, config)` checks a
  `secdocker.docker.ContainerOpts` against a policy.
- `secdocker.command.parse_run_args(args)` turns `docker run` options into a
  `ContainerOpts`.
- `secdocker.command.generate_args_from_config(config)` returns the docker
  options that the general settings add.
- `secdocker.docker.add_general_restrictions(opts, config)` applies the
  configured user and environment.
- `secdocker.docker.solve_collisions(first, second, separator)` merges
  `key=value` lists. Entries in `first` win.
- `secdocker.server.process_create_container(method, target, body, config, plugins_dir)`
  checks a Docker API `/containers/create` request.
  - It returns the rewritten JSON body, or empty bytes if the request is
    forbidden.
  - With an empty body, the image is taken from the `fromImage` and `tag`
    query parameters.
- `secdocker.intercept.mangle.Data.mangle()` applies that check to a raw HTTP
  request held in `Data.payload`:
  - an allowed request is replaced by the rewritten request;
  - a forbidden request is replaced by a `403 Forbidden` response, and
    `Data.forbidden` is set.

  `parse_http_request`, `forbidden_response` and `hex_dump` are available on
  their own.
- `secdocker.intercept.listener.TCPListener` and `TLSListener` accept TCP and
  TLS connections.

## What it does not do

The package has no proxy server. Nothing here connects accepted connections to
their original destination or relays traffic between a client and the Docker
daemon. The request checking and rewriting in `secdocker.intercept.mangle` and
the listeners in `secdocker.intercept.listener` are building blocks. You must
wire them into a server of your own.